import hashlib
import json
from html import escape
from typing import Any, Dict, List, Optional

import httpx
import structlog

from app.config.settings import settings
from app.core.cache import AZURE_PROJECTS_CACHE, CACHE_TTL_PROJECTS
from app.models.azure import AzureConnection, JsonPatchOperation
from app.models.schemas import AzureIteration, AzureProject, TestCase, TestCasePriority, TestStep, UserStoryBase
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError, IAzureDevOpsService

logger = structlog.get_logger()

# Azure DevOps caps a single work item batch request at 200 ids
WORK_ITEM_BATCH_SIZE = 200

PRIORITY_TO_AZURE = {
    TestCasePriority.HIGH: 1,
    TestCasePriority.MEDIUM: 2,
    TestCasePriority.LOW: 3,
}


def render_steps_xml(steps: List[TestStep]) -> str:
    """Render steps in the XML format stored in Microsoft.VSTS.TCM.Steps."""
    # Step ids start at 2; id 1 is reserved by the test case editor
    parts = [f'<steps id="0" last="{len(steps) + 1}">']
    for step_id, step in enumerate(steps, start=2):
        parts.append(
            f'<step id="{step_id}" type="ValidateStep">'
            f'<parameterizedString isformatted="true">{escape(step.action)}</parameterizedString>'
            f'<parameterizedString isformatted="true">{escape(step.expected_result)}</parameterizedString>'
            "<description/></step>"
        )
    parts.append("</steps>")
    return "".join(parts)


def _text_to_html(text: str) -> str:
    return escape(text).replace("\n", "<br/>")


def _flatten_iterations(node: Dict[str, Any]) -> List[AzureIteration]:
    iterations: List[AzureIteration] = []
    # Node paths look like "\Project\Iteration\Sprint 1"; work items use "Project\Sprint 1"
    parts = [p for p in (node.get("path") or "").split("\\") if p]
    if len(parts) > 1 and parts[1] == "Iteration":
        del parts[1]
    if parts:
        iterations.append(AzureIteration(name=node.get("name", parts[-1]), path="\\".join(parts)))
    for child in node.get("children") or []:
        iterations.extend(_flatten_iterations(child))
    return iterations


def work_item_to_story(item: Dict[str, Any]) -> UserStoryBase:
    fields = item.get("fields", {})
    assigned_to = fields.get("System.AssignedTo")
    if isinstance(assigned_to, dict):
        assigned_to = assigned_to.get("displayName")
    raw_tags = fields.get("System.Tags") or ""
    priority = fields.get("Microsoft.VSTS.Common.Priority")
    return UserStoryBase(
        azure_id=str(item.get("id")),
        title=fields.get("System.Title", ""),
        description=fields.get("System.Description") or "",
        acceptance_criteria=fields.get("Microsoft.VSTS.Common.AcceptanceCriteria") or "",
        state=fields.get("System.State", "New"),
        assigned_to=assigned_to or "",
        priority=str(priority) if priority is not None else "Medium",
        created_date=fields.get("System.CreatedDate"),
        tags=[t.strip() for t in raw_tags.split(";") if t.strip()],
    )


class AzureDevOpsService(IAzureDevOpsService):
    """Azure DevOps Services REST implementation of the work item tracker"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_version = settings.azure_api_version
        self.timeout = settings.azure_request_timeout_seconds
        self._transport = transport

    def _client(self, pat_token: str) -> httpx.AsyncClient:
        # Basic auth with an empty user name and the PAT as password
        return httpx.AsyncClient(
            auth=("", pat_token),
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _request(self, pat_token: str, method: str, url: str, **kwargs) -> Dict[str, Any]:
        params = {"api-version": self.api_version, **kwargs.pop("params", {})}
        try:
            async with self._client(pat_token) as client:
                response = await client.request(method, url, params=params, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Azure DevOps request failed", method=method, url=url, error=str(e))
            raise AzureDevOpsError(f"Azure DevOps request failed: {e}") from e

        if not response.is_success:
            logger.error("Azure DevOps API error", method=method, url=url, status_code=response.status_code)
            raise AzureDevOpsError(
                f"Azure DevOps API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.json() if response.content else {}

    async def test_connection(self, connection: AzureConnection) -> None:
        await self._request(
            connection.pat_token,
            "GET",
            f"{connection.base_url}/{connection.project}/_apis/wit/workitems",
            params={"$top": 1},
        )
        logger.info("Azure DevOps connection verified", project=connection.project)

    async def list_projects(self, organization_url: str, pat_token: str) -> List[AzureProject]:
        base_url = organization_url.rstrip("/")
        cache_key = ("projects", base_url, hashlib.sha256(pat_token.encode()).hexdigest()[:16])
        cached = AZURE_PROJECTS_CACHE.get(cache_key)
        if cached is not None:
            return cached

        data = await self._request(pat_token, "GET", f"{base_url}/_apis/projects")
        projects = [AzureProject(id=str(p.get("id")), name=p.get("name", "")) for p in data.get("value", [])]
        AZURE_PROJECTS_CACHE.set(cache_key, projects, CACHE_TTL_PROJECTS)
        logger.info("Fetched Azure DevOps projects", count=len(projects))
        return projects

    async def list_iterations(self, connection: AzureConnection) -> List[AzureIteration]:
        data = await self._request(
            connection.pat_token,
            "GET",
            f"{connection.base_url}/{connection.project}/_apis/wit/classificationnodes/iterations",
            params={"$depth": 10},
        )
        return [it for it in _flatten_iterations(data) if "\\" in it.path]

    def _build_story_query(self, connection: AzureConnection) -> str:
        query = (
            "SELECT [System.Id] FROM WorkItems "
            "WHERE [System.TeamProject] = @project AND [System.WorkItemType] = 'User Story'"
        )
        if connection.iteration_path:
            iteration = connection.iteration_path.replace("'", "''")
            query += f" AND [System.IterationPath] UNDER '{iteration}'"
        return query + " ORDER BY [System.CreatedDate] DESC"

    async def fetch_user_stories(self, connection: AzureConnection) -> List[UserStoryBase]:
        project_url = f"{connection.base_url}/{connection.project}"
        query_result = await self._request(
            connection.pat_token,
            "POST",
            f"{project_url}/_apis/wit/wiql",
            json={"query": self._build_story_query(connection)},
        )
        ids = [item["id"] for item in query_result.get("workItems", [])][: settings.azure_max_work_items]
        if not ids:
            logger.info("No user stories found in Azure DevOps", project=connection.project)
            return []

        stories: List[UserStoryBase] = []
        for start in range(0, len(ids), WORK_ITEM_BATCH_SIZE):
            batch = ids[start:start + WORK_ITEM_BATCH_SIZE]
            data = await self._request(
                connection.pat_token,
                "GET",
                f"{project_url}/_apis/wit/workitems",
                params={"ids": ",".join(str(i) for i in batch)},
            )
            stories.extend(work_item_to_story(item) for item in data.get("value", []))

        logger.info("Fetched user stories from Azure DevOps", project=connection.project, count=len(stories))
        return stories

    def build_test_case_patch(
        self, connection: AzureConnection, test_case: TestCase, story_azure_id: Optional[str] = None
    ) -> List[JsonPatchOperation]:
        description = test_case.objective
        if test_case.prerequisites:
            description += f"\n\n{test_case.prerequisites}"
        operations = [
            JsonPatchOperation(path="/fields/System.Title", value=test_case.title),
            JsonPatchOperation(path="/fields/System.Description", value=_text_to_html(description)),
            JsonPatchOperation(
                path="/fields/Microsoft.VSTS.Common.Priority",
                value=PRIORITY_TO_AZURE.get(test_case.priority, 2),
            ),
            JsonPatchOperation(
                path="/fields/Microsoft.VSTS.TCM.Steps",
                value=render_steps_xml(test_case.test_steps_structured),
            ),
        ]
        if connection.iteration_path:
            operations.append(JsonPatchOperation(path="/fields/System.IterationPath", value=connection.iteration_path))
        if story_azure_id:
            operations.append(
                JsonPatchOperation(
                    path="/relations/-",
                    value={
                        "rel": "Microsoft.VSTS.Common.TestedBy-Reverse",
                        "url": f"{connection.base_url}/_apis/wit/workItems/{story_azure_id}",
                    },
                )
            )
        return operations

    async def create_test_case(
        self, connection: AzureConnection, test_case: TestCase, story_azure_id: Optional[str] = None
    ) -> str:
        operations = self.build_test_case_patch(connection, test_case, story_azure_id)
        created = await self._request(
            connection.pat_token,
            "POST",
            f"{connection.base_url}/{connection.project}/_apis/wit/workitems/$Test%20Case",
            content=json.dumps([op.model_dump() for op in operations]),
            headers={"Content-Type": "application/json-patch+json"},
        )
        azure_id = str(created.get("id"))
        logger.info("Test case created in Azure DevOps", test_case_id=test_case.id, azure_id=azure_id)
        return azure_id
