from typing import Any, Dict, Optional, Type
from sqlalchemy.orm import Session
from app.repositories.interfaces.configuration_repository import IConfigurationRepository
from app.models.database import (
    AiConfigurationModel,
    AiContextModel,
    AzureConfigModel,
    EnvironmentConfigModel,
    TestDataConfigModel,
)
from app.models.schemas import (
    AiConfiguration,
    AiContext,
    AzureConfigCreate,
    EnvironmentConfig,
    StoredAzureConfig,
    TestDataConfig,
)


class SQLConfigurationRepository(IConfigurationRepository):
    """SQLAlchemy implementation of the configuration repository.

    Generation settings are stored one row per Azure DevOps configuration;
    saving overwrites the given fields of that row or creates it.
    """

    def __init__(self, db: Session):
        self.db = db

    def _find(self, model: Type[Any], config_id: Optional[int]):
        query = self.db.query(model)
        if config_id is None:
            query = query.filter(model.config_id.is_(None))
        else:
            query = query.filter(model.config_id == config_id)
        return query.order_by(model.id.desc()).first()

    def _save(self, model: Type[Any], config_id: Optional[int], values: Dict[str, Any]):
        row = self._find(model, config_id)
        if row is None:
            row = model(config_id=config_id, **values)
            self.db.add(row)
        else:
            for field, value in values.items():
                setattr(row, field, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    async def create_azure_config(self, config: AzureConfigCreate) -> StoredAzureConfig:
        db_config = AzureConfigModel(**config.model_dump())
        self.db.add(db_config)
        self.db.commit()
        self.db.refresh(db_config)
        return StoredAzureConfig.model_validate(db_config)

    async def get_latest_azure_config(self) -> Optional[StoredAzureConfig]:
        db_config = self.db.query(AzureConfigModel).order_by(AzureConfigModel.id.desc()).first()
        if db_config:
            return StoredAzureConfig.model_validate(db_config)
        return None

    async def get_test_data_config(self, config_id: Optional[int]) -> Optional[TestDataConfig]:
        row = self._find(TestDataConfigModel, config_id)
        return TestDataConfig.model_validate(row) if row else None

    async def save_test_data_config(self, config_id: Optional[int], values: Dict[str, Any]) -> TestDataConfig:
        return TestDataConfig.model_validate(self._save(TestDataConfigModel, config_id, values))

    async def get_environment_config(self, config_id: Optional[int]) -> Optional[EnvironmentConfig]:
        row = self._find(EnvironmentConfigModel, config_id)
        return EnvironmentConfig.model_validate(row) if row else None

    async def save_environment_config(self, config_id: Optional[int], values: Dict[str, Any]) -> EnvironmentConfig:
        return EnvironmentConfig.model_validate(self._save(EnvironmentConfigModel, config_id, values))

    async def get_ai_configuration(self, config_id: Optional[int]) -> Optional[AiConfiguration]:
        row = self._find(AiConfigurationModel, config_id)
        return AiConfiguration.model_validate(row) if row else None

    async def save_ai_configuration(self, config_id: Optional[int], values: Dict[str, Any]) -> AiConfiguration:
        return AiConfiguration.model_validate(self._save(AiConfigurationModel, config_id, values))

    async def get_ai_context(self, config_id: Optional[int]) -> Optional[AiContext]:
        row = self._find(AiContextModel, config_id)
        return AiContext.model_validate(row) if row else None

    async def save_ai_context(self, config_id: Optional[int], values: Dict[str, Any]) -> AiContext:
        return AiContext.model_validate(self._save(AiContextModel, config_id, values))
