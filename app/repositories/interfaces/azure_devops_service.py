from abc import ABC, abstractmethod
from typing import List, Optional
from app.models.azure import AzureConnection
from app.models.schemas import AzureProject, AzureIteration, UserStoryBase, TestCase


class AzureDevOpsError(Exception):
    """Raised when Azure DevOps rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IAzureDevOpsService(ABC):
    """Interface for Azure DevOps work item tracking operations"""

    @abstractmethod
    async def test_connection(self, connection: AzureConnection) -> None:
        """Raise AzureDevOpsError unless the organization/project is reachable with the PAT"""
        pass

    @abstractmethod
    async def list_projects(self, organization_url: str, pat_token: str) -> List[AzureProject]:
        pass

    @abstractmethod
    async def list_iterations(self, connection: AzureConnection) -> List[AzureIteration]:
        pass

    @abstractmethod
    async def fetch_user_stories(self, connection: AzureConnection) -> List[UserStoryBase]:
        """Fetch User Story work items, newest first"""
        pass

    @abstractmethod
    async def create_test_case(
        self, connection: AzureConnection, test_case: TestCase, story_azure_id: Optional[str] = None
    ) -> str:
        """Create a Test Case work item and return its id"""
        pass
