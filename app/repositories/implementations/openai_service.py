import asyncio
import json
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI
import structlog

from app.config.settings import settings
from app.models.schemas import (
    AiConfigurationBase,
    AiContextBase,
    CoverageLevel,
    GenerateTestCasesRequest,
    GeneratedTestCase,
    Platform,
    TestCase,
    TestCaseAnalysis,
    TestCasePriority,
    TestCaseStatus,
    TestCaseType,
    TestStep,
    UserStory,
)
from app.repositories.interfaces.ai_service import AIServiceError, IAIService
from app.services.test_case_generator import clean_markup, render_test_steps, select_platforms, select_test_types

logger = structlog.get_logger()

TEST_CASE_COUNT = {
    CoverageLevel.COMPREHENSIVE: 6,
    CoverageLevel.STANDARD: 4,
    CoverageLevel.MINIMAL: 2,
}

_STEP_NUMBER_PREFIX = re.compile(r"^\s*\d+[.)]\s*")


def _coerce_priority(value: Any) -> TestCasePriority:
    for priority in TestCasePriority:
        if str(value).strip().lower() == priority.value.lower():
            return priority
    return TestCasePriority.MEDIUM


def _coerce_test_type(value: Any) -> Optional[TestCaseType]:
    for test_type in TestCaseType:
        if str(value).strip().lower() == test_type.value.lower():
            return test_type
    return None


def _coerce_platform(value: Any) -> Platform:
    for platform in Platform:
        if str(value).strip().lower() == platform.value:
            return platform
    return Platform.WEB


def _parse_steps(raw_steps: Any, overall_expected: str) -> List[TestStep]:
    if not isinstance(raw_steps, list):
        return []
    actions = []
    for raw in raw_steps:
        if isinstance(raw, dict):
            action = str(raw.get("action", "")).strip()
            expected = str(raw.get("expectedResult") or raw.get("expected_result") or "").strip()
        else:
            action, expected = str(raw).strip(), ""
        action = _STEP_NUMBER_PREFIX.sub("", action)
        if action:
            actions.append((action, expected))
    steps = [
        TestStep(step_number=number, action=action, expected_result=expected)
        for number, (action, expected) in enumerate(actions, start=1)
    ]
    # Plain string steps carry no per-step expectation; the last one gets the overall result
    if steps and not steps[-1].expected_result:
        steps[-1].expected_result = overall_expected
    return steps


def parse_generated_test_cases(content: str, story_id: Optional[int]) -> List[GeneratedTestCase]:
    """Parse the model's ``{"testCases": [...]}`` JSON into test case records."""
    try:
        json_match = re.search(r"\{.*\}", content or "", re.DOTALL)
        if not json_match:
            raise ValueError("no JSON object in model output")
        parsed = json.loads(json_match.group())
    except ValueError as e:
        raise AIServiceError(f"Unparseable AI response: {e}") from e

    items = parsed.get("testCases") if isinstance(parsed, dict) else None
    if not isinstance(items, list):
        raise AIServiceError("AI response has no testCases list")

    test_cases: List[GeneratedTestCase] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        expected_result = str(item.get("expectedResult") or "Test passes successfully")
        steps = _parse_steps(item.get("testSteps"), expected_result)
        prerequisites = item.get("prerequisites") or []
        if isinstance(prerequisites, list):
            prerequisites = "\n".join(f"- {p}" for p in prerequisites)
        test_cases.append(
            GeneratedTestCase(
                title=str(item["title"]),
                objective=str(item.get("objective") or item["title"]),
                prerequisites=str(prerequisites),
                test_steps=render_test_steps(steps),
                test_steps_structured=steps,
                expected_result=expected_result,
                required_permissions=str(item.get("requiredPermissions") or ""),
                priority=_coerce_priority(item.get("priority", "Medium")),
                test_case_type=_coerce_test_type(item.get("testType", "")),
                platform=_coerce_platform(item.get("platform", "web")),
                status=TestCaseStatus.PENDING,
                user_story_id=story_id,
            )
        )

    if not test_cases:
        raise AIServiceError("AI response contained no usable test cases")
    return test_cases


class OpenAIService(IAIService):
    """OpenAI chat completions implementation of AI service"""

    def __init__(self):
        self.model = settings.openai_model
        self.base_url = settings.openai_base_url
        self.default_api_key = settings.openai_api_key

    def _client(self, api_key: Optional[str]) -> OpenAI:
        key = api_key or self.default_api_key
        if not key:
            raise AIServiceError("OpenAI API key not configured")
        return OpenAI(base_url=self.base_url, api_key=key)

    def _complete(self, client: OpenAI, system_prompt: str, user_prompt: str, temperature: float) -> str:
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=temperature,
            max_tokens=settings.openai_max_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_test_cases(
        self,
        story: UserStory,
        request: GenerateTestCasesRequest,
        ai_config: AiConfigurationBase,
        ai_context: Optional[AiContextBase] = None,
        api_key: Optional[str] = None,
    ) -> List[GeneratedTestCase]:
        """Draft test cases with the chat completions API (async wrapper)"""
        client = self._client(api_key)
        prompt = self._build_generation_prompt(story, request, ai_config, ai_context)
        logger.info("Prompt built", story_id=story.id, prompt_preview=prompt[:200], model=self.model)

        def sync_call() -> str:
            return self._complete(client, self._get_system_prompt(), prompt, settings.openai_temperature)

        try:
            content = await asyncio.get_event_loop().run_in_executor(None, sync_call)
        except Exception as e:
            logger.error("OpenAI test case generation failed", story_id=story.id, error=str(e))
            raise AIServiceError(f"OpenAI request failed: {e}") from e

        test_cases = parse_generated_test_cases(content, story.id)
        logger.info("Parsed AI test cases", story_id=story.id, count=len(test_cases))
        return test_cases

    async def analyze_test_case(self, test_case: TestCase, api_key: Optional[str] = None) -> TestCaseAnalysis:
        """Review a stored test case and suggest improvements (async wrapper)"""
        client = self._client(api_key)
        prompt = self._build_analysis_prompt(test_case)

        def sync_call() -> str:
            return self._complete(client, self._get_analysis_system_prompt(), prompt, 0.6)

        try:
            content = await asyncio.get_event_loop().run_in_executor(None, sync_call)
            parsed: Dict[str, Any] = json.loads(content or "{}")
        except json.JSONDecodeError as e:
            raise AIServiceError(f"Unparseable AI response: {e}") from e
        except Exception as e:
            logger.error("OpenAI test case analysis failed", test_case_id=test_case.id, error=str(e))
            raise AIServiceError(f"OpenAI request failed: {e}") from e

        if not isinstance(parsed, dict):
            raise AIServiceError("AI analysis response is not a JSON object")

        suggestions = parsed.get("suggestions")
        return TestCaseAnalysis(
            response=parsed.get("response") or "Test case analysis completed.",
            suggestions=[str(s) for s in suggestions] if isinstance(suggestions, list) else [],
        )

    def _get_system_prompt(self) -> str:
        return (
            "You are an expert QA engineer specializing in comprehensive test case design. "
            "Generate detailed, executable test cases that follow industry best practices.\n\n"
            "IMPORTANT: Reply with a single, valid JSON object ONLY, no markdown or commentary.\n\n"
            "Required JSON structure:\n"
            "{\n"
            "  \"testCases\": [\n"
            "    {\n"
            "      \"title\": string,\n"
            "      \"objective\": string,\n"
            "      \"prerequisites\": [string],\n"
            "      \"testSteps\": [{\"action\": string, \"expectedResult\": string}],\n"
            "      \"expectedResult\": string,\n"
            "      \"priority\": \"High\" | \"Medium\" | \"Low\",\n"
            "      \"testType\": string,\n"
            "      \"platform\": \"web\" | \"mobile\" | \"api\"\n"
            "    }\n"
            "  ]\n"
            "}"
        )

    def _get_analysis_system_prompt(self) -> str:
        return (
            "You are a test case analysis expert. Analyze the provided test case and suggest improvements.\n"
            "Respond with JSON in this format: "
            "{\"response\": \"Your analysis and recommendations\", \"suggestions\": [\"Suggestion 1\"]}"
        )

    def _build_generation_prompt(
        self,
        story: UserStory,
        request: GenerateTestCasesRequest,
        ai_config: AiConfigurationBase,
        ai_context: Optional[AiContextBase],
    ) -> str:
        test_types = ", ".join(t.value for t in select_test_types(ai_config)) or "Positive"
        platforms = ", ".join(p.value for p in select_platforms(ai_config))

        prompt = f"""Generate test cases for the following user story:

Title: {story.title}
Description: {clean_markup(story.description)}
Acceptance Criteria: {clean_markup(story.acceptance_criteria)}
Priority: {story.priority or "Medium"}

Requirements:
- Style: {request.style.value}
- Coverage Level: {request.coverage_level.value}
- Test Complexity: {ai_config.test_complexity.value}
- Include Negative Tests: {request.include_negative}
- Include Performance Tests: {request.include_performance}
- Test Types: {test_types}
- Target Platforms: {platforms}

Generate {TEST_CASE_COUNT[request.coverage_level]} test cases.
"""
        if ai_config.additional_instructions:
            prompt += f"\nAdditional Instructions:\n{ai_config.additional_instructions}\n"

        if ai_context:
            for heading, entries in (
                ("Project Context", ai_context.project_context),
                ("Domain Knowledge", ai_context.domain_knowledge),
                ("Testing Patterns to Follow", ai_context.testing_patterns),
            ):
                if entries:
                    prompt += f"\n{heading}:\n" + "\n".join(f"- {e}" for e in entries) + "\n"
            if ai_context.custom_instructions:
                prompt += f"\nCustom Instructions:\n{ai_context.custom_instructions}\n"

        return prompt

    def _build_analysis_prompt(self, test_case: TestCase) -> str:
        current = {
            "title": test_case.title,
            "objective": test_case.objective,
            "prerequisites": test_case.prerequisites,
            "test_steps": [step.model_dump() for step in test_case.test_steps_structured],
            "expected_result": test_case.expected_result,
        }
        return f"Analyze this test case and suggest improvements:\n\n{json.dumps(current, indent=2)}"
