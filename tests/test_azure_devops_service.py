import base64
import json

import httpx
import pytest

from app.core.cache import AZURE_PROJECTS_CACHE
from app.models import schemas
from app.models.azure import AzureConnection
from app.repositories.implementations.azure_devops_service import (
    AzureDevOpsService,
    render_steps_xml,
    work_item_to_story,
)
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError

CONNECTION = AzureConnection(
    organization_url="https://dev.azure.com/contoso/",
    pat_token="secret-pat",
    project="Shop",
    iteration_path="Shop\\Sprint 1",
)


class Recorder:
    """Collects requests and answers them with a handler"""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def service_for(handler):
    recorder = Recorder(handler)
    return AzureDevOpsService(transport=httpx.MockTransport(recorder)), recorder


@pytest.fixture(autouse=True)
def clear_projects_cache():
    AZURE_PROJECTS_CACHE.clear_all()
    yield
    AZURE_PROJECTS_CACHE.clear_all()


def make_test_case(**overrides):
    steps = [
        schemas.TestStep(step_number=1, action="Open <login> page", expected_result="Page & form shown"),
        schemas.TestStep(step_number=2, action="Sign in", expected_result="Dashboard shown"),
    ]
    values = dict(
        id=7,
        title="Positive Test Case (Web Portal): User Login",
        objective="Positive testing to verify: User Login",
        prerequisites="PREREQUISITES FOR THIS USER STORY:",
        test_steps=["1. Open <login> page", "2. Sign in"],
        test_steps_structured=steps,
        expected_result="Works",
        priority=schemas.TestCasePriority.HIGH,
        status=schemas.TestCaseStatus.APPROVED,
    )
    values.update(overrides)
    return schemas.TestCase(**values)


@pytest.mark.asyncio
async def test_fetch_user_stories_queries_and_maps_work_items():
    def handler(request):
        if request.method == "POST":
            return httpx.Response(200, json={"workItems": [{"id": 11}, {"id": 12}]})
        return httpx.Response(
            200,
            json={
                "value": [
                    {
                        "id": 11,
                        "fields": {
                            "System.Title": "User Login",
                            "System.Description": "<p>Sign in</p>",
                            "Microsoft.VSTS.Common.AcceptanceCriteria": "AC1: Works",
                            "System.State": "Active",
                            "System.AssignedTo": {"displayName": "Dana Lee"},
                            "Microsoft.VSTS.Common.Priority": 1,
                            "System.Tags": "auth; web",
                        },
                    },
                    {"id": 12, "fields": {"System.Title": "Logout"}},
                ]
            },
        )

    service, recorder = service_for(handler)
    stories = await service.fetch_user_stories(CONNECTION)

    wiql_request, batch_request = recorder.requests
    assert wiql_request.url.path == "/contoso/Shop/_apis/wit/wiql"
    assert wiql_request.url.params["api-version"] == "7.0"
    query = json.loads(wiql_request.content)["query"]
    assert "[System.WorkItemType] = 'User Story'" in query
    assert "UNDER 'Shop\\Sprint 1'" in query
    assert batch_request.url.params["ids"] == "11,12"

    expected_auth = "Basic " + base64.b64encode(b":secret-pat").decode()
    assert wiql_request.headers["Authorization"] == expected_auth

    assert stories[0].azure_id == "11"
    assert stories[0].assigned_to == "Dana Lee"
    assert stories[0].priority == "1"
    assert stories[0].tags == ["auth", "web"]
    assert stories[1].state == "New"
    assert stories[1].priority == "Medium"


@pytest.mark.asyncio
async def test_fetch_user_stories_without_results_skips_batch():
    service, recorder = service_for(lambda request: httpx.Response(200, json={"workItems": []}))
    assert await service.fetch_user_stories(CONNECTION) == []
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_create_test_case_sends_json_patch():
    service, recorder = service_for(lambda request: httpx.Response(200, json={"id": 9001}))

    azure_id = await service.create_test_case(CONNECTION, make_test_case(), story_azure_id="11")

    assert azure_id == "9001"
    request = recorder.requests[0]
    assert request.method == "POST"
    assert "$Test" in str(request.url)
    assert request.headers["Content-Type"] == "application/json-patch+json"

    operations = {op["path"]: op["value"] for op in json.loads(request.content)}
    assert operations["/fields/System.Title"] == "Positive Test Case (Web Portal): User Login"
    assert operations["/fields/Microsoft.VSTS.Common.Priority"] == 1
    assert operations["/fields/System.IterationPath"] == "Shop\\Sprint 1"
    assert operations["/relations/-"] == {
        "rel": "Microsoft.VSTS.Common.TestedBy-Reverse",
        "url": "https://dev.azure.com/contoso/_apis/wit/workItems/11",
    }


@pytest.mark.asyncio
async def test_api_errors_raise_with_status():
    service, _ = service_for(lambda request: httpx.Response(401))
    with pytest.raises(AzureDevOpsError) as exc_info:
        await service.test_connection(CONNECTION)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_transport_errors_raise():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service, _ = service_for(handler)
    with pytest.raises(AzureDevOpsError):
        await service.list_iterations(CONNECTION)


@pytest.mark.asyncio
async def test_list_projects_is_cached():
    service, recorder = service_for(
        lambda request: httpx.Response(200, json={"value": [{"id": "a1", "name": "Shop"}]})
    )

    first = await service.list_projects("https://dev.azure.com/contoso", "secret-pat")
    second = await service.list_projects("https://dev.azure.com/contoso/", "secret-pat")

    assert [p.name for p in first] == ["Shop"]
    assert second == first
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_list_iterations_flattens_tree():
    tree = {
        "name": "Shop",
        "path": "\\Shop\\Iteration",
        "children": [
            {
                "name": "Release 1",
                "path": "\\Shop\\Iteration\\Release 1",
                "children": [{"name": "Sprint 1", "path": "\\Shop\\Iteration\\Release 1\\Sprint 1"}],
            }
        ],
    }
    service, _ = service_for(lambda request: httpx.Response(200, json=tree))

    iterations = await service.list_iterations(CONNECTION)

    assert [(i.name, i.path) for i in iterations] == [
        ("Release 1", "Shop\\Release 1"),
        ("Sprint 1", "Shop\\Release 1\\Sprint 1"),
    ]


def test_render_steps_xml_escapes_text():
    xml = render_steps_xml(make_test_case().test_steps_structured)
    assert xml.startswith('<steps id="0" last="3">')
    assert '<step id="2" type="ValidateStep">' in xml
    assert "Open &lt;login&gt; page" in xml
    assert "Page &amp; form shown" in xml


def test_work_item_without_fields():
    story = work_item_to_story({"id": 5})
    assert story.azure_id == "5"
    assert story.title == ""
    assert story.tags == []
