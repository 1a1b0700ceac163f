from fastapi import APIRouter, Depends, HTTPException, status

from app.models.schemas import (
    AiConfiguration,
    AiConfigurationBase,
    AiConfigurationUpdate,
    AiContext,
    AiContextBase,
    EnvironmentConfig,
    EnvironmentConfigBase,
    EnvironmentConfigUpdate,
    TestDataConfig,
    TestDataConfigBase,
    TestDataConfigUpdate,
)
from app.services.configuration_service import ConfigurationService
from app.core.dependencies import get_configuration_service

router = APIRouter(tags=["configurations"])


def _found(value, name: str):
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{name} not found"
        )
    return value


@router.get("/test-data-config", response_model=TestDataConfig)
async def get_test_data_config(service: ConfigurationService = Depends(get_configuration_service)):
    return _found(await service.get_test_data_config(), "Test data configuration")


@router.post("/test-data-config", response_model=TestDataConfig)
async def save_test_data_config(
    config: TestDataConfigBase,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Credentials, portal URL and permissions used in generated prerequisites"""
    return await service.save_test_data_config(config)


@router.patch("/test-data-config", response_model=TestDataConfig)
async def update_test_data_config(
    update: TestDataConfigUpdate,
    service: ConfigurationService = Depends(get_configuration_service)
):
    return await service.update_test_data_config(update)


@router.get("/environment-config", response_model=EnvironmentConfig)
async def get_environment_config(service: ConfigurationService = Depends(get_configuration_service)):
    return _found(await service.get_environment_config(), "Environment configuration")


@router.post("/environment-config", response_model=EnvironmentConfig)
async def save_environment_config(
    config: EnvironmentConfigBase,
    service: ConfigurationService = Depends(get_configuration_service)
):
    return await service.save_environment_config(config)


@router.patch("/environment-config", response_model=EnvironmentConfig)
async def update_environment_config(
    update: EnvironmentConfigUpdate,
    service: ConfigurationService = Depends(get_configuration_service)
):
    return await service.update_environment_config(update)


@router.get("/ai-configuration", response_model=AiConfiguration)
async def get_ai_configuration(service: ConfigurationService = Depends(get_configuration_service)):
    return _found(await service.get_ai_configuration(), "AI configuration")


@router.post("/ai-configuration", response_model=AiConfiguration)
async def save_ai_configuration(
    config: AiConfigurationBase,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Test type and platform toggles driving generation"""
    return await service.save_ai_configuration(config)


@router.patch("/ai-configuration", response_model=AiConfiguration)
async def update_ai_configuration(
    update: AiConfigurationUpdate,
    service: ConfigurationService = Depends(get_configuration_service)
):
    return await service.update_ai_configuration(update)


@router.get("/ai-context", response_model=AiContext)
async def get_ai_context(service: ConfigurationService = Depends(get_configuration_service)):
    return _found(await service.get_ai_context(), "AI context")


@router.post("/ai-context", response_model=AiContext)
async def save_ai_context(
    context: AiContextBase,
    service: ConfigurationService = Depends(get_configuration_service)
):
    return await service.save_ai_context(context)
