from typing import List, Optional
import structlog

from app.models.azure import AzureConnection
from app.models.schemas import (
    AiConfiguration,
    AiConfigurationBase,
    AiConfigurationUpdate,
    AiContext,
    AiContextBase,
    AzureConfigCreate,
    AzureConnectionRequest,
    AzureConnectionResponse,
    AzureIteration,
    AzureProject,
    AzureProjectsRequest,
    EnvironmentConfig,
    EnvironmentConfigBase,
    EnvironmentConfigUpdate,
    StoredAzureConfig,
    TestDataConfig,
    TestDataConfigBase,
    TestDataConfigUpdate,
)
from app.repositories.interfaces.azure_devops_service import IAzureDevOpsService
from app.repositories.interfaces.configuration_repository import IConfigurationRepository

logger = structlog.get_logger()


class MissingConfigurationError(Exception):
    """Raised when an operation needs a saved Azure DevOps configuration and there is none"""

    def __init__(self, message: str = "No Azure DevOps configuration found"):
        super().__init__(message)


class ConfigurationService:
    """Connection settings and generation settings for the current Azure DevOps configuration"""

    def __init__(self, configuration_repository: IConfigurationRepository, azure_service: IAzureDevOpsService):
        self.configuration_repository = configuration_repository
        self.azure_service = azure_service

    async def save_azure_config(self, config: AzureConfigCreate) -> StoredAzureConfig:
        saved = await self.configuration_repository.create_azure_config(config)
        logger.info("Azure DevOps configuration saved", config_id=saved.id, project=saved.project)
        return saved

    async def get_latest_azure_config(self) -> Optional[StoredAzureConfig]:
        return await self.configuration_repository.get_latest_azure_config()

    async def require_azure_config(self) -> StoredAzureConfig:
        config = await self.configuration_repository.get_latest_azure_config()
        if config is None:
            raise MissingConfigurationError()
        return config

    async def current_config_id(self) -> Optional[int]:
        config = await self.configuration_repository.get_latest_azure_config()
        return config.id if config else None

    async def test_connection(self, request: AzureConnectionRequest) -> AzureConnectionResponse:
        """Raises AzureDevOpsError when the organization/project cannot be reached"""
        await self.azure_service.test_connection(AzureConnection(**request.model_dump()))
        return AzureConnectionResponse(success=True, message="Connection successful")

    async def list_projects(self, request: AzureProjectsRequest) -> List[AzureProject]:
        return await self.azure_service.list_projects(request.organization_url, request.pat_token)

    async def list_iterations(self, request: AzureConnectionRequest) -> List[AzureIteration]:
        return await self.azure_service.list_iterations(AzureConnection(**request.model_dump()))

    # Generation settings

    async def get_test_data_config(self) -> Optional[TestDataConfig]:
        return await self.configuration_repository.get_test_data_config(await self.current_config_id())

    async def save_test_data_config(self, config: TestDataConfigBase) -> TestDataConfig:
        return await self.configuration_repository.save_test_data_config(
            await self.current_config_id(), config.model_dump()
        )

    async def update_test_data_config(self, update: TestDataConfigUpdate) -> TestDataConfig:
        return await self.configuration_repository.save_test_data_config(
            await self.current_config_id(), update.model_dump(exclude_unset=True)
        )

    async def get_environment_config(self) -> Optional[EnvironmentConfig]:
        return await self.configuration_repository.get_environment_config(await self.current_config_id())

    async def save_environment_config(self, config: EnvironmentConfigBase) -> EnvironmentConfig:
        return await self.configuration_repository.save_environment_config(
            await self.current_config_id(), config.model_dump()
        )

    async def update_environment_config(self, update: EnvironmentConfigUpdate) -> EnvironmentConfig:
        return await self.configuration_repository.save_environment_config(
            await self.current_config_id(), update.model_dump(exclude_unset=True)
        )

    async def get_ai_configuration(self) -> Optional[AiConfiguration]:
        return await self.configuration_repository.get_ai_configuration(await self.current_config_id())

    async def save_ai_configuration(self, config: AiConfigurationBase) -> AiConfiguration:
        saved = await self.configuration_repository.save_ai_configuration(
            await self.current_config_id(), config.model_dump()
        )
        logger.info("AI configuration saved", config_id=saved.config_id)
        return saved

    async def update_ai_configuration(self, update: AiConfigurationUpdate) -> AiConfiguration:
        return await self.configuration_repository.save_ai_configuration(
            await self.current_config_id(), update.model_dump(exclude_unset=True)
        )

    async def get_ai_context(self) -> Optional[AiContext]:
        return await self.configuration_repository.get_ai_context(await self.current_config_id())

    async def save_ai_context(self, context: AiContextBase) -> AiContext:
        return await self.configuration_repository.save_ai_context(
            await self.current_config_id(), context.model_dump()
        )
