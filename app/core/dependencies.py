from functools import lru_cache
from fastapi import Depends
from sqlalchemy.orm import Session
from app.repositories.interfaces.test_case_repository import ITestCaseRepository
from app.repositories.interfaces.user_story_repository import IUserStoryRepository
from app.repositories.interfaces.configuration_repository import IConfigurationRepository
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.interfaces.azure_devops_service import IAzureDevOpsService

from app.repositories.implementations.sql_test_case_repository import SQLTestCaseRepository
from app.repositories.implementations.sql_user_story_repository import SQLUserStoryRepository
from app.repositories.implementations.sql_configuration_repository import SQLConfigurationRepository
from app.repositories.implementations.openai_service import OpenAIService
from app.repositories.implementations.azure_devops_service import AzureDevOpsService

from app.services.configuration_service import ConfigurationService
from app.services.test_case_service import TestCaseService
from app.core.database import get_database


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._ai_service = None
        self._azure_service = None

    def test_case_repository(self, db: Session) -> ITestCaseRepository:
        """Get test case repository instance"""
        return SQLTestCaseRepository(db)

    def user_story_repository(self, db: Session) -> IUserStoryRepository:
        """Get user story repository instance"""
        return SQLUserStoryRepository(db)

    def configuration_repository(self, db: Session) -> IConfigurationRepository:
        """Get configuration repository instance"""
        return SQLConfigurationRepository(db)

    @lru_cache()
    def ai_service(self) -> IAIService:
        """Get AI service instance (singleton)"""
        if self._ai_service is None:
            self._ai_service = OpenAIService()
        return self._ai_service

    @lru_cache()
    def azure_service(self) -> IAzureDevOpsService:
        """Get Azure DevOps service instance (singleton)"""
        if self._azure_service is None:
            self._azure_service = AzureDevOpsService()
        return self._azure_service

    def configuration_service(
        self, db: Session, azure_service: IAzureDevOpsService
    ) -> ConfigurationService:
        """Get configuration service instance"""
        return ConfigurationService(
            configuration_repository=self.configuration_repository(db),
            azure_service=azure_service,
        )

    def test_case_service(
        self, db: Session, azure_service: IAzureDevOpsService, ai_service: IAIService
    ) -> TestCaseService:
        """Get test case service instance"""
        return TestCaseService(
            test_case_repository=self.test_case_repository(db),
            user_story_repository=self.user_story_repository(db),
            configuration_service=self.configuration_service(db, azure_service),
            azure_service=azure_service,
            ai_service=ai_service,
        )


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_ai_service() -> IAIService:
    """FastAPI dependency for AI service"""
    return container.ai_service()


def get_azure_service() -> IAzureDevOpsService:
    """FastAPI dependency for Azure DevOps service"""
    return container.azure_service()


def get_configuration_service(
    db: Session = Depends(get_database),
    azure_service: IAzureDevOpsService = Depends(get_azure_service),
) -> ConfigurationService:
    """FastAPI dependency for configuration service"""
    return container.configuration_service(db, azure_service)


def get_test_case_service(
    db: Session = Depends(get_database),
    azure_service: IAzureDevOpsService = Depends(get_azure_service),
    ai_service: IAIService = Depends(get_ai_service),
) -> TestCaseService:
    """FastAPI dependency for test case service"""
    return container.test_case_service(db, azure_service, ai_service)
