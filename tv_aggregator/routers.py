from typing import Annotated
from collections.abc import AsyncIterator
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from tv_aggregator.dependencies import get_notification_center, get_pipeline, get_scheduler
from tv_aggregator.schemas import NotificationResponse, RefreshResponse, StateResponse
from tv_aggregator.services.notification_service import NotificationCenter
from tv_aggregator.services.pipeline_service import ChannelPipeline
from tv_aggregator.services.scheduler_service import RefreshScheduler
from tv_aggregator.state import describe_state, state_kind


logger = logging.getLogger(__name__)

main_router = APIRouter()

PipelineDep = Annotated[ChannelPipeline, Depends(get_pipeline)]
SchedulerDep = Annotated[RefreshScheduler, Depends(get_scheduler)]
NotificationsDep = Annotated[NotificationCenter, Depends(get_notification_center)]


@main_router.get("/")
async def root(scheduler: SchedulerDep) -> dict:
    """Root endpoint with service information"""
    next_run = scheduler.get_next_run_time()

    return {
        "service": "TV Aggregator",
        "version": "0.1.0",
        "next_scheduled_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "state": "/state - Current channel state",
            "stream": "/state/stream - State updates as NDJSON",
            "refresh": "/refresh - Manually trigger a full refresh (POST)",
            "aliases": "/aliases/refresh - Reload channel aliases and refresh (POST)",
            "notifications": "/notifications - Recent warnings",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(pipeline: PipelineDep, scheduler: SchedulerDep) -> dict:
    """Health check endpoint"""
    store = pipeline.state_store
    next_run = scheduler.get_next_run_time()
    return {
        "status": "ok",
        "state": state_kind(store.value),
        "detail": describe_state(store.value),
        "active_run": store.active_run,
        "scheduler_running": scheduler.running,
        "next_refresh": next_run.isoformat() if next_run else None
    }


@main_router.get("/state", response_model=StateResponse)
async def get_state(pipeline: PipelineDep) -> StateResponse:
    """Current pipeline state with the published channel list"""
    store = pipeline.state_store
    return StateResponse.from_state(store.value, store.active_run)


@main_router.get("/state/stream")
async def stream_state(pipeline: PipelineDep) -> StreamingResponse:
    """Stream the current state and every later change as NDJSON"""
    store = pipeline.state_store

    async def _lines() -> AsyncIterator[str]:
        async for state in store.subscribe():
            yield StateResponse.from_state(state, store.active_run).model_dump_json() + "\n"

    return StreamingResponse(_lines(), media_type="application/x-ndjson")


@main_router.post("/refresh", response_model=RefreshResponse)
async def trigger_refresh(pipeline: PipelineDep) -> RefreshResponse:
    """
    Manually trigger a full pipeline run

    A run already in progress is superseded
    """
    logger.info("Manual refresh triggered via API")
    pipeline.trigger("manual refresh")
    return RefreshResponse(reason="manual refresh")


@main_router.post("/aliases/refresh", response_model=RefreshResponse)
async def trigger_alias_refresh(pipeline: PipelineDep) -> RefreshResponse:
    """Reload the channel alias table and rerun the pipeline with it"""
    logger.info("Alias reload triggered via API")
    pipeline.trigger("alias reload")
    return RefreshResponse(reason="alias reload")


@main_router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(notifications: NotificationsDep) -> list[NotificationResponse]:
    """Recent user-visible warnings, newest last"""
    return [NotificationResponse.from_notification(item) for item in notifications.recent()]
