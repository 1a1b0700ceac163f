from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from app.models.schemas import UserStory, UserStoryCreate
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError
from app.services.configuration_service import MissingConfigurationError
from app.services.test_case_service import TestCaseService
from app.core.dependencies import get_test_case_service

logger = structlog.get_logger()

router = APIRouter(prefix="/user-stories", tags=["user-stories"])


@router.get("", response_model=List[UserStory])
async def sync_user_stories(service: TestCaseService = Depends(get_test_case_service)):
    """Fetch user stories from Azure DevOps and store them"""
    try:
        return await service.sync_user_stories()
    except MissingConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AzureDevOpsError as e:
        logger.error("Failed to fetch user stories", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch user stories: {e}"
        )


@router.get("/stored", response_model=List[UserStory])
async def get_stored_user_stories(service: TestCaseService = Depends(get_test_case_service)):
    """User stories already stored for the current configuration"""
    return await service.get_stored_user_stories()


@router.post("", response_model=UserStory, status_code=status.HTTP_201_CREATED)
async def create_user_story(
    story: UserStoryCreate,
    service: TestCaseService = Depends(get_test_case_service)
):
    return await service.create_user_story(story)


@router.get("/{story_id}", response_model=UserStory)
async def get_user_story(
    story_id: int,
    service: TestCaseService = Depends(get_test_case_service)
):
    story = await service.get_user_story(story_id)
    if not story:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User story not found"
        )
    return story
