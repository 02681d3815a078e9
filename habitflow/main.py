from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from habitflow import __version__
from habitflow.core.config import settings
from habitflow.db.session import create_tables
from habitflow.routes import habits
from habitflow.services.scheduler import scheduler_service


# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} API")
    logger.info(f"Store backend: {settings.store_backend}, horizon: {settings.horizon_days} days")
    if settings.store_backend == "database":
        create_tables()
    if settings.scheduler_enabled:
        scheduler_service.start()
    yield
    # Shutdown
    scheduler_service.shutdown()
    logger.info("Shutting down API")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Recurring habit occurrence engine",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(habits.router, prefix="/habits", tags=["habits"])


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
