"""
Dependency wiring

Builds the application's pipeline, notification center and scheduler from
settings and hands out the shared instances. Routers receive them through
FastAPI's Depends so tests can override them.
"""
import logging
from functools import partial

from tv_aggregator.config import AggregatorSettings, settings
from tv_aggregator.services.alias_service import ChannelAlias, alias_loader_from_settings
from tv_aggregator.services.epg_source_service import fetch_epg
from tv_aggregator.services.hybrid_service import HybridUrlLookup
from tv_aggregator.services.iptv_source_service import fetch_channels
from tv_aggregator.services.notification_service import NotificationCenter
from tv_aggregator.services.pipeline_service import ChannelPipeline
from tv_aggregator.services.scheduler_service import RefreshScheduler


logger = logging.getLogger(__name__)

# Global instances, created on first use
_notification_center: NotificationCenter | None = None
_pipeline: ChannelPipeline | None = None
_scheduler: RefreshScheduler | None = None


def build_pipeline(app_settings: AggregatorSettings, notifier: NotificationCenter) -> ChannelPipeline:
    """
    Create a pipeline wired to the real source fetchers.

    Raises:
        OSError, ValueError: If the configured hybrid URL file is unusable
    """
    if app_settings.hybrid_url_file:
        hybrid_lookup = HybridUrlLookup.from_file(app_settings.hybrid_url_file)
    else:
        hybrid_lookup = HybridUrlLookup.default()

    return ChannelPipeline(
        app_settings.pipeline_config,
        fetch_channels=partial(
            fetch_channels,
            cache_dir=app_settings.cache_dir,
            timeout=app_settings.http_timeout_sec,
        ),
        fetch_epg=partial(
            fetch_epg,
            cache_dir=app_settings.cache_dir,
            timeout=app_settings.http_timeout_sec,
        ),
        alias=ChannelAlias(alias_loader_from_settings(app_settings)),
        hybrid_lookup=hybrid_lookup,
        notifier=notifier,
    )


def get_notification_center() -> NotificationCenter:
    global _notification_center
    if _notification_center is None:
        _notification_center = NotificationCenter()
    return _notification_center


def get_pipeline() -> ChannelPipeline:
    """
    Get or create the global pipeline singleton.

    Returns:
        The global ChannelPipeline instance
    """
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(settings, get_notification_center())
        logger.debug("Pipeline created")
    return _pipeline


def get_scheduler() -> RefreshScheduler:
    """Get or create the global refresh scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = RefreshScheduler(get_pipeline(), settings.refresh_cron)
    return _scheduler


def reset_dependencies() -> None:
    """
    Drop all global instances (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _notification_center, _pipeline, _scheduler
    _notification_center = None
    _pipeline = None
    _scheduler = None
