from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON, Boolean, ForeignKey
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from app.models.schemas import TestCaseStatus, TestCasePriority, TestCaseSource, TestComplexity

Base = declarative_base()


class AzureConfigModel(Base):
    __tablename__ = "azure_configs"

    id = Column(Integer, primary_key=True, index=True)
    organization_url = Column(String(500), nullable=False)
    pat_token = Column(String(500), nullable=False)
    project = Column(String(255), nullable=False)
    iteration_path = Column(String(500), nullable=True)
    openai_key = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<AzureConfig(id={self.id}, project='{self.project}')>"


class UserStoryModel(Base):
    __tablename__ = "user_stories"

    id = Column(Integer, primary_key=True, index=True)
    azure_id = Column(String(50), nullable=True, unique=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    acceptance_criteria = Column(Text, nullable=True)
    state = Column(String(50), nullable=False, default="New")
    assigned_to = Column(String(255), nullable=True)
    priority = Column(String(20), nullable=True)
    created_date = Column(String(50), nullable=True)
    tags = Column(JSON, default=list)
    config_id = Column(Integer, ForeignKey("azure_configs.id"), nullable=True, index=True)

    def __repr__(self):
        return f"<UserStory(id={self.id}, azure_id='{self.azure_id}', title='{self.title}')>"


class TestCaseModel(Base):
    __tablename__ = "test_cases"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False, index=True)
    objective = Column(Text, nullable=False)
    prerequisites = Column(Text, nullable=False, default="")
    test_steps = Column(JSON, nullable=False, default=list)
    test_steps_structured = Column(JSON, nullable=False, default=list)
    expected_result = Column(Text, nullable=False)
    test_password = Column(String(255), nullable=True)
    required_permissions = Column(String(500), nullable=False, default="")
    priority = Column(Enum(TestCasePriority), default=TestCasePriority.MEDIUM)
    category = Column(String(50), nullable=True)
    test_case_type = Column(String(50), nullable=True)
    platform = Column(String(20), nullable=False, default="web")
    status = Column(Enum(TestCaseStatus), default=TestCaseStatus.PENDING, index=True)
    source = Column(Enum(TestCaseSource), default=TestCaseSource.TEMPLATE)
    user_story_id = Column(Integer, ForeignKey("user_stories.id"), nullable=True, index=True)
    azure_test_case_id = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<TestCase(id={self.id}, title='{self.title}', status='{self.status}')>"


class TestDataConfigModel(Base):
    __tablename__ = "test_data_configs"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("azure_configs.id"), nullable=True, index=True)
    username = Column(String(255), nullable=True)
    password = Column(String(255), nullable=True)
    web_portal_url = Column(String(500), nullable=True)
    permissions = Column(JSON, default=list)
    additional_data = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class EnvironmentConfigModel(Base):
    __tablename__ = "environment_configs"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("azure_configs.id"), nullable=True, index=True)
    operating_system = Column(String(100), nullable=True)
    os_version = Column(String(50), nullable=True)
    web_browser = Column(String(100), nullable=True)
    browser_version = Column(String(50), nullable=True)
    mobile_device = Column(String(100), nullable=True)
    mobile_version = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AiConfigurationModel(Base):
    __tablename__ = "ai_configurations"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("azure_configs.id"), nullable=True, index=True)
    include_positive_tests = Column(Boolean, default=True)
    include_negative_tests = Column(Boolean, default=True)
    include_edge_cases = Column(Boolean, default=True)
    include_security_cases = Column(Boolean, default=False)
    include_performance_tests = Column(Boolean, default=False)
    include_ui_tests = Column(Boolean, default=False)
    include_usability_tests = Column(Boolean, default=False)
    include_api_tests = Column(Boolean, default=False)
    include_compatibility_tests = Column(Boolean, default=False)
    enable_web_portal_tests = Column(Boolean, default=True)
    enable_mobile_app_tests = Column(Boolean, default=False)
    enable_api_tests = Column(Boolean, default=False)
    test_complexity = Column(Enum(TestComplexity), default=TestComplexity.MEDIUM)
    additional_instructions = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AiContextModel(Base):
    __tablename__ = "ai_contexts"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("azure_configs.id"), nullable=True, unique=True)
    project_context = Column(JSON, default=list)
    domain_knowledge = Column(JSON, default=list)
    testing_patterns = Column(JSON, default=list)
    custom_instructions = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
