from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.core.database import get_database
from app.core.dependencies import get_ai_service, get_azure_service
from app.models.azure import AzureConnection
from app.models.database import Base
from app.models.schemas import (
    AzureIteration,
    AzureProject,
    GeneratedTestCase,
    TestCaseAnalysis,
    TestStep,
    UserStoryBase,
)
from app.repositories.interfaces.ai_service import AIServiceError, IAIService
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError, IAzureDevOpsService

# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeAzureDevOpsService(IAzureDevOpsService):
    """In-memory stand-in for Azure DevOps"""

    def __init__(self):
        self.stories: List[UserStoryBase] = []
        self.created: List[dict] = []
        self.fail_titles: set = set()
        self.connections: List[AzureConnection] = []

    async def test_connection(self, connection: AzureConnection) -> None:
        self.connections.append(connection)
        if connection.pat_token == "bad-pat":
            raise AzureDevOpsError("Azure DevOps API error: 401 Unauthorized", status_code=401)

    async def list_projects(self, organization_url: str, pat_token: str) -> List[AzureProject]:
        return [AzureProject(id="p-1", name="Contoso")]

    async def list_iterations(self, connection: AzureConnection) -> List[AzureIteration]:
        return [AzureIteration(name="Sprint 1", path=f"{connection.project}\\Sprint 1")]

    async def fetch_user_stories(self, connection: AzureConnection) -> List[UserStoryBase]:
        self.connections.append(connection)
        return list(self.stories)

    async def create_test_case(self, connection, test_case, story_azure_id: Optional[str] = None) -> str:
        if test_case.title in self.fail_titles:
            raise AzureDevOpsError("Azure DevOps API error: 400 Bad Request", status_code=400)
        self.created.append({"test_case_id": test_case.id, "story_azure_id": story_azure_id})
        return str(5000 + len(self.created))


class FakeAIService(IAIService):
    """Returns canned drafts or fails on demand"""

    def __init__(self):
        self.fail = False
        self.calls = 0

    async def generate_test_cases(self, story, request, ai_config, ai_context=None, api_key=None):
        self.calls += 1
        if self.fail:
            raise AIServiceError("OpenAI API key not configured")
        steps = [TestStep(step_number=1, action="Open the login page", expected_result="Page is shown")]
        return [
            GeneratedTestCase(
                title=f"AI drafted: {story.title}",
                objective="Verify login",
                test_steps=["1. Open the login page"],
                test_steps_structured=steps,
                expected_result="Login works",
                user_story_id=story.id,
            )
        ]

    async def analyze_test_case(self, test_case, api_key=None):
        if self.fail:
            raise AIServiceError("OpenAI request failed: timeout")
        return TestCaseAnalysis(
            response=f"Reviewed {test_case.title}",
            suggestions=["Add a boundary value step"],
        )


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_azure():
    return FakeAzureDevOpsService()


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def test_client(db_session, fake_azure, fake_ai):
    """Synchronous test client wired to the in-memory database and fakes"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_database] = override_get_db
    app.dependency_overrides[get_azure_service] = lambda: fake_azure
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    yield TestClient(app)
    app.dependency_overrides.clear()
