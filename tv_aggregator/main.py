from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from tv_aggregator.config import settings, setup_logging
from tv_aggregator.dependencies import get_pipeline, get_scheduler

from tv_aggregator.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting TV Aggregator...")

    try:
        settings.log_summary()
        pipeline = get_pipeline()
        scheduler = get_scheduler()

        logger.info("Starting scheduler...")
        scheduler.start()

        logger.info("Starting initial pipeline run...")
        pipeline.trigger("startup")

        logger.info("TV Aggregator started successfully")
    except Exception as e:
        logger.error(f"Failed to start TV Aggregator: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down TV Aggregator...")

    try:
        scheduler.shutdown()
        await pipeline.aclose()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)

    logger.info("TV Aggregator stopped")


app = FastAPI(
    title="TV Aggregator",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)
