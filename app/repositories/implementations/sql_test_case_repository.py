from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from app.repositories.interfaces.test_case_repository import ITestCaseRepository
from app.models.database import TestCaseModel
from app.models.schemas import GeneratedTestCase, TestCase, TestCaseSource, TestCaseStatus


def _to_row(test_case: GeneratedTestCase, source: TestCaseSource) -> Dict[str, Any]:
    data = test_case.model_dump()
    data["test_steps_structured"] = [step.model_dump() for step in test_case.test_steps_structured]
    # Plain string columns
    for field in ("category", "test_case_type", "platform"):
        if data[field] is not None:
            data[field] = data[field].value
    data["source"] = source
    return data


class SQLTestCaseRepository(ITestCaseRepository):
    """SQLAlchemy implementation of test case repository"""

    def __init__(self, db: Session):
        self.db = db

    def _get_model(self, test_case_id: int) -> Optional[TestCaseModel]:
        return self.db.query(TestCaseModel).filter(TestCaseModel.id == test_case_id).first()

    async def create_many(
        self, test_cases: List[GeneratedTestCase], source: TestCaseSource = TestCaseSource.TEMPLATE
    ) -> List[TestCase]:
        """Persist a batch of test cases in one transaction"""
        db_test_cases = [TestCaseModel(**_to_row(tc, source)) for tc in test_cases]
        self.db.add_all(db_test_cases)
        self.db.commit()
        for db_test_case in db_test_cases:
            self.db.refresh(db_test_case)
        return [TestCase.model_validate(db_test_case) for db_test_case in db_test_cases]

    async def get_by_id(self, test_case_id: int) -> Optional[TestCase]:
        """Get test case by ID"""
        db_test_case = self._get_model(test_case_id)
        if db_test_case:
            return TestCase.model_validate(db_test_case)
        return None

    async def get_by_ids(self, test_case_ids: List[int]) -> List[TestCase]:
        if not test_case_ids:
            return []
        db_test_cases = (
            self.db.query(TestCaseModel)
            .filter(TestCaseModel.id.in_(test_case_ids))
            .order_by(TestCaseModel.id)
            .all()
        )
        return [TestCase.model_validate(test_case) for test_case in db_test_cases]

    async def get_all(
        self,
        user_story_id: Optional[int] = None,
        status: Optional[TestCaseStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TestCase]:
        """Get test cases with optional story/status filters and pagination"""
        query = self.db.query(TestCaseModel)
        if user_story_id is not None:
            query = query.filter(TestCaseModel.user_story_id == user_story_id)
        if status is not None:
            query = query.filter(TestCaseModel.status == status)
        db_test_cases = query.order_by(TestCaseModel.id).offset(skip).limit(limit).all()
        return [TestCase.model_validate(test_case) for test_case in db_test_cases]

    async def update_status(self, test_case_id: int, status: TestCaseStatus) -> Optional[TestCase]:
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return None

        db_test_case.status = status
        self.db.commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def set_azure_id(self, test_case_id: int, azure_test_case_id: str) -> Optional[TestCase]:
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return None

        db_test_case.azure_test_case_id = azure_test_case_id
        self.db.commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def delete(self, test_case_id: int) -> bool:
        """Delete a test case"""
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return False

        self.db.delete(db_test_case)
        self.db.commit()
        return True
