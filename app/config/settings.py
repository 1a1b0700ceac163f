from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # OpenAI Configuration (secrets come from environment)
    # A key stored on the Azure DevOps configuration takes precedence.
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 3000

    # Azure DevOps Integration
    azure_api_version: str = "7.0"
    # Upper bound on user stories pulled per sync
    azure_max_work_items: int = 200
    azure_request_timeout_seconds: float = 30.0
    azure_projects_cache_ttl_seconds: float = 120.0

    # Database Configuration
    database_url: str = "sqlite:///./data/testcases.db"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
