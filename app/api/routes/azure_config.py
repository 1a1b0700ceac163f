from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from app.models.schemas import (
    AzureConfig,
    AzureConfigCreate,
    AzureConnectionRequest,
    AzureConnectionResponse,
    AzureIteration,
    AzureProject,
    AzureProjectsRequest,
)
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError
from app.services.configuration_service import ConfigurationService
from app.core.dependencies import get_configuration_service

logger = structlog.get_logger()

router = APIRouter(tags=["azure-devops"])


@router.post("/azure-config", response_model=AzureConfig, status_code=status.HTTP_201_CREATED)
async def save_azure_config(
    config: AzureConfigCreate,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Save Azure DevOps connection settings; the newest one is the current configuration"""
    return await service.save_azure_config(config)


@router.get("/azure-config/latest", response_model=AzureConfig)
async def get_latest_azure_config(service: ConfigurationService = Depends(get_configuration_service)):
    config = await service.get_latest_azure_config()
    if not config:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No Azure DevOps configuration found"
        )
    return config


@router.post("/azure-config/test", response_model=AzureConnectionResponse)
async def test_azure_connection(
    request: AzureConnectionRequest,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Check that the organization and project are reachable with the PAT"""
    try:
        return await service.test_connection(request)
    except AzureDevOpsError as e:
        logger.warning("Azure DevOps connection test failed", project=request.project, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to connect to Azure DevOps: {e}"
        )


@router.post("/azure-devops/projects", response_model=List[AzureProject])
async def list_azure_projects(
    request: AzureProjectsRequest,
    service: ConfigurationService = Depends(get_configuration_service)
):
    try:
        return await service.list_projects(request)
    except AzureDevOpsError as e:
        logger.error("Failed to fetch Azure DevOps projects", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch projects: {e}"
        )


@router.post("/azure-devops/iterations", response_model=List[AzureIteration])
async def list_azure_iterations(
    request: AzureConnectionRequest,
    service: ConfigurationService = Depends(get_configuration_service)
):
    try:
        return await service.list_iterations(request)
    except AzureDevOpsError as e:
        logger.error("Failed to fetch Azure DevOps iterations", project=request.project, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch iterations: {e}"
        )
