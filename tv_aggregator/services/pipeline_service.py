"""
Channel Pipeline

Sequences one aggregation run: fetch channels, merge similar channels,
resolve hybrid URLs, publish Ready, then attach EPG.

Every run gets a token from the state store. A newer run supersedes an
older one; the older run keeps going but none of its writes are accepted.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tv_aggregator.config import PipelineConfig
from tv_aggregator.errors import PipelineError, SourceConfigurationError
from tv_aggregator.models import ChannelGroupList, IptvSource
from tv_aggregator.services.alias_service import AliasTable, ChannelAlias
from tv_aggregator.services.epg_fetch_service import FetchEpg, refresh_epg
from tv_aggregator.services.hybrid_service import HybridLookup, HybridUrlLookup, resolve_hybrid_urls
from tv_aggregator.services.merge_service import merge_similar_channels
from tv_aggregator.services.notification_service import NotificationCenter, Notifier
from tv_aggregator.services.retry_service import run_with_retry
from tv_aggregator.services.state_store import PipelineStateStore
from tv_aggregator.state import Error, Loading, Ready
from tv_aggregator.utils.logging_helpers import (
    log_run_start,
    log_run_summary,
    log_stage_end,
    log_stage_start,
)


logger = logging.getLogger(__name__)

FetchChannels = Callable[[IptvSource, int], Awaitable[ChannelGroupList]]


class ChannelPipeline:
    """Owns the observable pipeline state and runs the aggregation pipeline."""

    def __init__(
        self,
        config_factory: Callable[[], PipelineConfig],
        *,
        fetch_channels: FetchChannels,
        fetch_epg: FetchEpg,
        alias: ChannelAlias | None = None,
        hybrid_lookup: HybridLookup | None = None,
        notifier: Notifier | None = None,
        store: PipelineStateStore | None = None,
    ) -> None:
        self._config_factory = config_factory
        self._fetch_channels = fetch_channels
        self._fetch_epg = fetch_epg
        self._alias = alias or ChannelAlias()
        self._hybrid_lookup = hybrid_lookup or HybridUrlLookup.default()
        self._notifier = notifier or NotificationCenter()
        self._store = store or PipelineStateStore()
        self._tasks: set[asyncio.Task] = set()

    @property
    def state_store(self) -> PipelineStateStore:
        return self._store

    async def init(self, reason: str = "manual") -> int:
        """
        Run the pipeline from scratch, superseding any run in flight.

        Returns:
            Token of this run
        """
        run_id = self._store.begin_run()
        log_run_start(logger, run_id, reason)
        self._store.publish(run_id, Loading())

        config = self._config_factory()
        aliases = await self._alias.refresh()

        groups = await self._refresh_channel(run_id, config, aliases)
        if groups is None:
            return run_id

        await refresh_epg(self._store, run_id, config, self._fetch_epg, self._notifier)
        return run_id

    def trigger(self, reason: str = "manual") -> asyncio.Task:
        """Start a run in the background without waiting for it."""
        task = asyncio.create_task(self.init(reason), name=f"pipeline-{reason}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        """Cancel background runs (used on shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _refresh_channel(
        self,
        run_id: int,
        config: PipelineConfig,
        aliases: AliasTable,
    ) -> ChannelGroupList | None:
        log_stage_start(logger, "channel fetch")

        async def _attempt() -> ChannelGroupList:
            if config.iptv_source is None:
                raise SourceConfigurationError("No channel source configured")
            return await self._fetch_channels(config.iptv_source, config.iptv_source_cache_ttl_sec)

        def _on_attempt(attempt: int) -> None:
            self._store.publish(
                run_id,
                Loading(f"Fetching remote channel source ({attempt}/{config.network_retry_count})..."),
            )

        try:
            groups = await run_with_retry(
                _attempt,
                max_attempts=config.network_retry_count,
                interval=config.network_retry_interval_sec,
                on_attempt=_on_attempt,
            )
            loop = asyncio.get_running_loop()
            groups = await loop.run_in_executor(None, self._transform, groups, config, aliases)
        except PipelineError as exc:
            logger.error(f"Run {run_id} failed: {exc}")
            self._store.publish(run_id, Error(str(exc)))
            return None
        except Exception as exc:
            logger.error(f"Unexpected error in run {run_id}: {exc}", exc_info=True)
            self._store.publish(run_id, Error(str(exc) or type(exc).__name__))
            return None

        if not self._store.publish(run_id, Ready(channel_group_list=groups)):
            logger.info(f"Run {run_id} superseded - discarding channel result")
            return None

        log_stage_end(logger, "channel fetch")
        log_run_summary(logger, run_id, groups)
        return groups

    def _transform(
        self,
        groups: ChannelGroupList,
        config: PipelineConfig,
        aliases: AliasTable,
    ) -> ChannelGroupList:
        groups = merge_similar_channels(groups, aliases, config.iptv_similar_channel_merge)
        return resolve_hybrid_urls(groups, config.iptv_hybrid_mode, self._hybrid_lookup)
