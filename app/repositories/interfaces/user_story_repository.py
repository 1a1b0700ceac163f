from abc import ABC, abstractmethod
from typing import List, Optional
from app.models.schemas import UserStory, UserStoryBase, UserStoryCreate


class IUserStoryRepository(ABC):
    """Interface for user story repository operations"""

    @abstractmethod
    async def create(self, story: UserStoryCreate) -> UserStory:
        pass

    @abstractmethod
    async def upsert_many(self, stories: List[UserStoryBase], config_id: Optional[int]) -> List[UserStory]:
        """Insert or update stories keyed by their Azure DevOps id"""
        pass

    @abstractmethod
    async def get_by_id(self, story_id: int) -> Optional[UserStory]:
        pass

    @abstractmethod
    async def get_by_ids(self, story_ids: List[int]) -> List[UserStory]:
        pass

    @abstractmethod
    async def get_all(self, config_id: Optional[int] = None) -> List[UserStory]:
        pass
