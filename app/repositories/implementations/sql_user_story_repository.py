from typing import List, Optional
from sqlalchemy.orm import Session
from app.repositories.interfaces.user_story_repository import IUserStoryRepository
from app.models.database import UserStoryModel
from app.models.schemas import UserStory, UserStoryBase, UserStoryCreate


class SQLUserStoryRepository(IUserStoryRepository):
    """SQLAlchemy implementation of user story repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, story: UserStoryCreate) -> UserStory:
        db_story = UserStoryModel(**story.model_dump())
        self.db.add(db_story)
        self.db.commit()
        self.db.refresh(db_story)
        return UserStory.model_validate(db_story)

    async def upsert_many(self, stories: List[UserStoryBase], config_id: Optional[int]) -> List[UserStory]:
        db_stories = []
        for story in stories:
            values = story.model_dump()
            db_story = None
            if story.azure_id:
                db_story = self.db.query(UserStoryModel).filter(UserStoryModel.azure_id == story.azure_id).first()
            if db_story is None:
                db_story = UserStoryModel(**values, config_id=config_id)
                self.db.add(db_story)
            else:
                for field, value in values.items():
                    setattr(db_story, field, value)
                db_story.config_id = config_id
            db_stories.append(db_story)

        self.db.commit()
        for db_story in db_stories:
            self.db.refresh(db_story)
        return [UserStory.model_validate(db_story) for db_story in db_stories]

    async def get_by_id(self, story_id: int) -> Optional[UserStory]:
        db_story = self.db.query(UserStoryModel).filter(UserStoryModel.id == story_id).first()
        if db_story:
            return UserStory.model_validate(db_story)
        return None

    async def get_by_ids(self, story_ids: List[int]) -> List[UserStory]:
        if not story_ids:
            return []
        db_stories = self.db.query(UserStoryModel).filter(UserStoryModel.id.in_(story_ids)).all()
        by_id = {db_story.id: db_story for db_story in db_stories}
        # Keep the caller's ordering
        return [UserStory.model_validate(by_id[story_id]) for story_id in story_ids if story_id in by_id]

    async def get_all(self, config_id: Optional[int] = None) -> List[UserStory]:
        query = self.db.query(UserStoryModel)
        if config_id is not None:
            query = query.filter(UserStoryModel.config_id == config_id)
        return [UserStory.model_validate(db_story) for db_story in query.order_by(UserStoryModel.id).all()]
