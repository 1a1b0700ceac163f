from fastapi import APIRouter
from app.api.routes import azure_config, configurations, health, test_cases, user_stories

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(azure_config.router)
api_router.include_router(user_stories.router)
api_router.include_router(test_cases.router)
api_router.include_router(configurations.router)
