from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from app.models.schemas import (
    AiConfiguration,
    AiContext,
    AzureConfigCreate,
    EnvironmentConfig,
    StoredAzureConfig,
    TestDataConfig,
)


class IConfigurationRepository(ABC):
    """Interface for saved connection and generation settings"""

    @abstractmethod
    async def create_azure_config(self, config: AzureConfigCreate) -> StoredAzureConfig:
        pass

    @abstractmethod
    async def get_latest_azure_config(self) -> Optional[StoredAzureConfig]:
        pass

    @abstractmethod
    async def get_test_data_config(self, config_id: Optional[int]) -> Optional[TestDataConfig]:
        pass

    @abstractmethod
    async def save_test_data_config(self, config_id: Optional[int], values: Dict[str, Any]) -> TestDataConfig:
        pass

    @abstractmethod
    async def get_environment_config(self, config_id: Optional[int]) -> Optional[EnvironmentConfig]:
        pass

    @abstractmethod
    async def save_environment_config(self, config_id: Optional[int], values: Dict[str, Any]) -> EnvironmentConfig:
        pass

    @abstractmethod
    async def get_ai_configuration(self, config_id: Optional[int]) -> Optional[AiConfiguration]:
        pass

    @abstractmethod
    async def save_ai_configuration(self, config_id: Optional[int], values: Dict[str, Any]) -> AiConfiguration:
        pass

    @abstractmethod
    async def get_ai_context(self, config_id: Optional[int]) -> Optional[AiContext]:
        pass

    @abstractmethod
    async def save_ai_context(self, config_id: Optional[int], values: Dict[str, Any]) -> AiContext:
        pass
