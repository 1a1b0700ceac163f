from abc import ABC, abstractmethod
from typing import List, Optional
from app.models.schemas import (
    AiConfigurationBase,
    AiContextBase,
    GenerateTestCasesRequest,
    GeneratedTestCase,
    TestCase,
    TestCaseAnalysis,
    UserStory,
)


class AIServiceError(Exception):
    """Raised when the LLM cannot be called or returns unusable output"""


class IAIService(ABC):
    """Interface for AI/LLM operations"""

    @abstractmethod
    async def generate_test_cases(
        self,
        story: UserStory,
        request: GenerateTestCasesRequest,
        ai_config: AiConfigurationBase,
        ai_context: Optional[AiContextBase] = None,
        api_key: Optional[str] = None,
    ) -> List[GeneratedTestCase]:
        """Draft test cases for a user story"""
        pass

    @abstractmethod
    async def analyze_test_case(self, test_case: TestCase, api_key: Optional[str] = None) -> TestCaseAnalysis:
        """Review a test case and suggest improvements"""
        pass
