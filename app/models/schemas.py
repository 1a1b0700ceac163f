from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum


class TestCaseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TestCasePriority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TestCaseCategory(str, Enum):
    FUNCTIONAL = "Functional"
    NON_FUNCTIONAL = "Non-Functional"


class TestCaseType(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    EDGE_CASE = "Edge Case"
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    UI = "UI"
    USABILITY = "Usability"
    API = "API"
    COMPATIBILITY = "Compatibility"


class Platform(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"


class TestCaseSource(str, Enum):
    TEMPLATE = "template"
    AI = "ai"
    CSV = "csv"


class TestComplexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class TestCaseStyle(str, Enum):
    GHERKIN = "gherkin"
    STEP_BY_STEP = "step-by-step"
    SCENARIO_BASED = "scenario-based"


class CoverageLevel(str, Enum):
    COMPREHENSIVE = "comprehensive"
    STANDARD = "standard"
    MINIMAL = "minimal"


class TestStep(BaseModel):
    step_number: int = Field(..., description="Step sequence number")
    action: str = Field(..., description="Action to be performed")
    expected_result: str = Field(..., description="Expected result of the action")


# Azure DevOps configuration

class AzureConfigCreate(BaseModel):
    organization_url: str = Field(..., description="e.g. https://dev.azure.com/my-org")
    pat_token: str = Field(..., description="Personal access token")
    project: str
    iteration_path: Optional[str] = None
    openai_key: Optional[str] = Field(None, description="Overrides the server-side OpenAI key")


class AzureConfig(BaseModel):
    """Azure DevOps configuration as returned to clients (secrets omitted)."""
    id: int
    organization_url: str
    project: str
    iteration_path: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StoredAzureConfig(AzureConfig):
    """Internal view of a saved configuration, including secrets."""
    pat_token: str
    openai_key: Optional[str] = None


class AzureConnectionRequest(BaseModel):
    organization_url: str
    pat_token: str
    project: str


class AzureProjectsRequest(BaseModel):
    organization_url: str
    pat_token: str


class AzureConnectionResponse(BaseModel):
    success: bool
    message: str


class AzureProject(BaseModel):
    id: str
    name: str


class AzureIteration(BaseModel):
    name: str
    path: str


# User stories

class UserStoryBase(BaseModel):
    azure_id: Optional[str] = Field(None, description="Work item id in Azure DevOps")
    title: str
    description: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    state: str = "New"
    assigned_to: Optional[str] = None
    priority: Optional[str] = None
    created_date: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class UserStoryCreate(UserStoryBase):
    config_id: Optional[int] = None


class UserStory(UserStoryBase):
    id: int
    config_id: Optional[int] = None

    class Config:
        from_attributes = True


# Generation inputs

class TestDataConfigBase(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    web_portal_url: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class TestDataConfigUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    web_portal_url: Optional[str] = None
    permissions: Optional[List[str]] = None
    additional_data: Optional[Dict[str, Any]] = None


class TestDataConfig(TestDataConfigBase):
    id: int
    config_id: Optional[int] = None

    class Config:
        from_attributes = True


class EnvironmentConfigBase(BaseModel):
    operating_system: Optional[str] = None
    os_version: Optional[str] = None
    web_browser: Optional[str] = None
    browser_version: Optional[str] = None
    mobile_device: Optional[str] = None
    mobile_version: Optional[str] = None


class EnvironmentConfigUpdate(EnvironmentConfigBase):
    pass


class EnvironmentConfig(EnvironmentConfigBase):
    id: int
    config_id: Optional[int] = None

    class Config:
        from_attributes = True


class AiConfigurationBase(BaseModel):
    include_positive_tests: bool = True
    include_negative_tests: bool = True
    include_edge_cases: bool = True
    include_security_cases: bool = False
    include_performance_tests: bool = False
    include_ui_tests: bool = False
    include_usability_tests: bool = False
    include_api_tests: bool = False
    include_compatibility_tests: bool = False
    enable_web_portal_tests: bool = True
    enable_mobile_app_tests: bool = False
    enable_api_tests: bool = False
    test_complexity: TestComplexity = TestComplexity.MEDIUM
    additional_instructions: Optional[str] = None


class AiConfigurationUpdate(BaseModel):
    include_positive_tests: Optional[bool] = None
    include_negative_tests: Optional[bool] = None
    include_edge_cases: Optional[bool] = None
    include_security_cases: Optional[bool] = None
    include_performance_tests: Optional[bool] = None
    include_ui_tests: Optional[bool] = None
    include_usability_tests: Optional[bool] = None
    include_api_tests: Optional[bool] = None
    include_compatibility_tests: Optional[bool] = None
    enable_web_portal_tests: Optional[bool] = None
    enable_mobile_app_tests: Optional[bool] = None
    enable_api_tests: Optional[bool] = None
    test_complexity: Optional[TestComplexity] = None
    additional_instructions: Optional[str] = None


class AiConfiguration(AiConfigurationBase):
    id: int
    config_id: Optional[int] = None

    class Config:
        from_attributes = True


# Used whenever no AI configuration has been saved
DEFAULT_AI_CONFIGURATION = AiConfigurationBase()


class AiContextBase(BaseModel):
    project_context: List[str] = Field(default_factory=list)
    domain_knowledge: List[str] = Field(default_factory=list)
    testing_patterns: List[str] = Field(default_factory=list)
    custom_instructions: Optional[str] = None


class AiContext(AiContextBase):
    id: int
    config_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Test cases

class GeneratedTestCase(BaseModel):
    title: str
    objective: str
    prerequisites: str = ""
    test_steps: List[str] = Field(default_factory=list, description="Numbered rendering of test_steps_structured")
    test_steps_structured: List[TestStep] = Field(default_factory=list)
    expected_result: str
    test_password: Optional[str] = None
    required_permissions: str = ""
    priority: TestCasePriority = TestCasePriority.MEDIUM
    category: Optional[TestCaseCategory] = None
    test_case_type: Optional[TestCaseType] = None
    platform: Platform = Field(Platform.WEB, description="Target surface under test")
    status: TestCaseStatus = TestCaseStatus.PENDING
    user_story_id: Optional[int] = None


class TestCase(GeneratedTestCase):
    id: int
    source: TestCaseSource = TestCaseSource.TEMPLATE
    azure_test_case_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TestCaseStatusUpdate(BaseModel):
    status: TestCaseStatus


class GenerateTestCasesRequest(BaseModel):
    user_story_ids: List[int] = Field(..., min_length=1)
    use_ai: bool = Field(False, description="Draft with the LLM instead of the template engine")
    style: TestCaseStyle = TestCaseStyle.STEP_BY_STEP
    coverage_level: CoverageLevel = CoverageLevel.STANDARD
    include_negative: bool = True
    include_performance: bool = False


class PreviewTestCasesRequest(BaseModel):
    story: UserStoryBase
    test_data_config: Optional[TestDataConfigBase] = None
    environment_config: Optional[EnvironmentConfigBase] = None
    ai_config: Optional[AiConfigurationBase] = None


class AddToAzureRequest(BaseModel):
    test_case_ids: List[int] = Field(..., min_length=1)


class AzurePushResult(BaseModel):
    test_case_id: int
    success: bool
    azure_id: Optional[str] = None
    error: Optional[str] = None


class AddToAzureResponse(BaseModel):
    message: str
    results: List[AzurePushResult] = Field(default_factory=list)
    success_count: int = 0


class CsvImportRequest(BaseModel):
    csv_content: str = Field(..., description="Azure DevOps test case export")
    user_story_id: int


class TestCaseAnalysis(BaseModel):
    response: str
    suggestions: List[str] = Field(default_factory=list)
