"""
EPG Fetching Service

Attaches programme data to a published channel list. EPG is enrichment:
when every attempt fails the channel list stays usable, the EPG is left
empty and the user gets a warning.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from tv_aggregator.config import PipelineConfig
from tv_aggregator.errors import PipelineError, SourceConfigurationError
from tv_aggregator.models import EpgList, EpgSource, epg_names
from tv_aggregator.services.notification_service import Notifier, Severity
from tv_aggregator.services.retry_service import run_with_retry
from tv_aggregator.services.state_store import PipelineStateStore
from tv_aggregator.state import Ready
from tv_aggregator.utils.logging_helpers import log_stage_end, log_stage_start


logger = logging.getLogger(__name__)

EPG_FAILED_MESSAGE = "EPG fetch failed, check the network connection"

FetchEpg = Callable[[EpgSource, Sequence[str], int], Awaitable[EpgList]]


async def refresh_epg(
    store: PipelineStateStore,
    run_id: int,
    config: PipelineConfig,
    fetch_epg: FetchEpg,
    notifier: Notifier,
) -> EpgList | None:
    """
    Fetch EPG for the channels of the current Ready state and attach it.

    Returns:
        The attached EPG list, or None when the stage did not run or the
        run was superseded before it could write
    """
    if not config.epg_enable:
        logger.info("EPG disabled - skipping EPG fetch")
        return None

    state = store.value
    if not store.is_active(run_id) or not isinstance(state, Ready):
        logger.debug(f"Run {run_id} is not ready - skipping EPG fetch")
        return None

    filter_names = epg_names(state.channel_group_list)
    log_stage_start(logger, "EPG fetch")

    async def _attempt() -> EpgList:
        if config.epg_source is None:
            raise SourceConfigurationError("No EPG source configured")
        return await fetch_epg(config.epg_source, filter_names, config.epg_refresh_time_threshold)

    failed = False
    try:
        epg_list = await run_with_retry(
            _attempt,
            max_attempts=config.network_retry_count,
            interval=config.network_retry_interval_sec,
        )
    except PipelineError as exc:
        logger.error(f"EPG fetch failed: {exc}")
        epg_list = ()
        failed = True
    except Exception as exc:
        logger.error(f"Unexpected error in EPG fetch for run {run_id}: {exc}", exc_info=True)
        epg_list = ()
        failed = True

    if not store.update(run_id, lambda current: _attach_epg(current, epg_list)):
        logger.info(f"Run {run_id} superseded - discarding EPG result")
        return None

    if failed:
        notifier.notify(EPG_FAILED_MESSAGE, Severity.WARNING)

    log_stage_end(logger, "EPG fetch")
    return epg_list


def _attach_epg(state, epg_list: EpgList):
    if isinstance(state, Ready):
        return state.with_epg(epg_list)
    return state
