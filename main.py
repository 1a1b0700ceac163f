from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import structlog
import sys
import time
from app.api.routes import api_router
from app.config.settings import settings
from app.core.database import create_tables
from app.repositories.interfaces.azure_devops_service import AzureDevOpsError

# structlog hands records to the stdlib logger, which needs a level and a sink
logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="Test Case Studio API",
        description="Test case generation and review for Azure DevOps user stories",
        version="1.0.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=round(time.time() - start_time, 4)
        )

        return response

    # Azure DevOps failures not handled by a route
    @app.exception_handler(AzureDevOpsError)
    async def azure_devops_exception_handler(request: Request, exc: AzureDevOpsError):
        logger.error(
            "Azure DevOps request failed",
            method=request.method,
            path=request.url.path,
            upstream_status=exc.status_code,
            error=str(exc)
        )
        return JSONResponse(
            status_code=502,
            content={"detail": f"Azure DevOps request failed: {exc}"}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "timestamp": time.time()
            }
        )

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


# Create the application instance
app = create_app()


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Application starting up", environment=settings.environment)

    try:
        create_tables()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    if not settings.openai_api_key:
        logger.warning("OpenAI API key not configured; AI generation needs a key on the Azure DevOps configuration")

    logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Application shutting down")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
