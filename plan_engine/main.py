import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from plan_engine.api.training_plans import get_calibration
from plan_engine.api.training_plans import router as training_plans_router
from plan_engine.config.settings import settings
from plan_engine.core.logger import setup_logger
from plan_engine.db.models import Base
from plan_engine.db.session import get_engine

# Initialize logger
setup_logger(level=settings.log_level, log_file=settings.log_file)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create tables and load calibration before serving requests.

    Note: FastAPI requires async for lifespan context manager,
    even if no await operations are used.
    """
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")

    calibration = get_calibration()
    logger.info("Calibration ready", version=calibration.version)

    await asyncio.sleep(0)
    yield


app = FastAPI(title="Plan Engine", lifespan=lifespan)

app.include_router(training_plans_router)

logger.info("FastAPI application initialized")


@app.get("/health")
def health():
    return {"status": "ok", "calibration_version": settings.calibration_version}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
