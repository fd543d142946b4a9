"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone

from tv_aggregator.models import ChannelGroupList


def log_stage_start(logger: logging.Logger, stage_name: str) -> None:
    """
    Log the start of a pipeline stage.

    Args:
        logger: Logger instance
        stage_name: Name of the stage being started
    """
    logger.info(f"Starting: {stage_name}")


def log_stage_end(logger: logging.Logger, stage_name: str) -> None:
    """
    Log the end of a pipeline stage.

    Args:
        logger: Logger instance
        stage_name: Name of the stage being ended
    """
    logger.info(f"Completed: {stage_name}")


def log_run_start(logger: logging.Logger, run_id: int, reason: str) -> None:
    """Log pipeline run start."""
    logger.info(f"Pipeline run {run_id} ({reason}) started at {datetime.now(timezone.utc).isoformat()}")


def log_run_summary(
    logger: logging.Logger,
    run_id: int,
    groups: ChannelGroupList,
) -> None:
    """
    Log the channel list a run published.

    Args:
        logger: Logger instance
        run_id: Run token
        groups: Published channel groups
    """
    channel_count = sum(len(group.channel_list) for group in groups)
    url_count = sum(len(channel.url_list) for group in groups for channel in group.channel_list)
    logger.info(
        f"Run {run_id} ready - Groups: {len(groups)}, Channels: {channel_count}, URLs: {url_count}"
    )
