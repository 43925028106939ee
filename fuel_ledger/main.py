# fuel_ledger/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fuel_ledger.core.config import settings
from fuel_ledger.core.db import create_all_tables
from fuel_ledger.utils.logger import setup_app_logging, get_logger
# Local application imports - Routes
from fuel_ledger.fuel_logs.router import router as fuel_log_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown
    """
    logger.info("Fuel ledger service starting", environment=settings.environment)
    # Production schemas are managed by the DBA
    if settings.environment.lower() != "production":
        await create_all_tables()
    yield
    logger.info("Fuel ledger service stopping")


# Create the FastAPI app
fuel_app = FastAPI(
    title=f"Fuel Consumption Ledger - {settings.environment}",
    description="Fuel Consumption Ledger API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
if settings.environment.lower() != "production":
    setup_app_logging(
        fuel_app,
        log_level=settings.log_level,
        use_json=settings.log_json,
        log_file=settings.log_file,
        app_name=settings.app_name,
        environment=settings.environment,
    )
else:
    setup_app_logging(
        fuel_app,
        log_level=settings.log_level,
        use_json=True,
        log_file=settings.log_file,
        app_name=settings.app_name,
        environment="production",
    )
logger = get_logger(__name__)

# Add CORS middleware
fuel_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_cors_urls.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

fuel_app.include_router(fuel_log_routes)


# Root API to check if the server is up
@fuel_app.get("/ping", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("Calling ping API")
    return {"status": "ok"}
