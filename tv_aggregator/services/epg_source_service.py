"""
EPG Source Service

Fetches XMLTV programme data for a source, reusing the cached copy until the
source's daily refresh hour has passed, and parses the schedules of the
requested channels.
"""
import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from tv_aggregator.models import EpgList, EpgSource
from tv_aggregator.services.xmltv_parser_service import parse_xmltv_bytes
from tv_aggregator.utils.file_operations import (
    cache_file_for,
    cache_modified_at,
    fetch_source_bytes,
    is_remote,
    read_cache,
    sanitize_url_for_logging,
    write_cache,
)


logger = logging.getLogger(__name__)


def is_epg_cache_fresh(
    cached_at: datetime | None,
    refresh_time_threshold: int,
    now: datetime | None = None,
) -> bool:
    """
    Decide whether cached EPG data can be reused.

    A copy written today is fresh. Before refresh_time_threshold o'clock the
    source has not published today's guide yet, so yesterday's copy is
    still fresh too.
    """
    if cached_at is None:
        return False
    now = now or datetime.now()
    if cached_at.date() == now.date():
        return True
    return now.hour < refresh_time_threshold and (now.date() - cached_at.date()).days == 1


async def fetch_epg(
    source: EpgSource,
    filter_names: Sequence[str],
    refresh_time_threshold: int,
    *,
    cache_dir: str | Path,
    timeout: float = 30.0,
) -> EpgList:
    """
    Fetch and parse programme data for the given channels.

    Args:
        source: EPG source descriptor
        filter_names: Epg names of the channels to keep
        refresh_time_threshold: Hour of day after which a cached copy from
            an earlier day is refetched

    Keyword Args:
        cache_dir: Directory holding cached source content
        timeout: HTTP timeout in seconds

    Returns:
        Programme lists for the matched channels

    Raises:
        TransientFetchError: If the source could not be reached
        SourceParseError: If the content is not valid XMLTV
        SourceConfigurationError: If the descriptor is unusable
    """
    safe_url = sanitize_url_for_logging(source.url)
    logger.info(f"[{source.name}] Fetching EPG for {len(filter_names)} channels from {safe_url}")

    data = await _load_epg_source(source, refresh_time_threshold, Path(cache_dir), timeout)

    logger.debug(f"[{source.name}] Offloading XMLTV parsing to thread pool executor...")
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, parse_xmltv_bytes, data, list(filter_names))


async def _load_epg_source(
    source: EpgSource,
    refresh_time_threshold: int,
    cache_dir: Path,
    timeout: float,
) -> bytes:
    if not is_remote(source.url):
        return await fetch_source_bytes(source.url, timeout=timeout)

    cache_path = cache_file_for(cache_dir, "epg", source.url)
    modified = cache_modified_at(cache_path)
    cached_at = datetime.fromtimestamp(modified) if modified is not None else None
    if is_epg_cache_fresh(cached_at, refresh_time_threshold):
        cached = await read_cache(cache_path)
        if cached:
            logger.info(f"[{source.name}] Using cached EPG from {cached_at.isoformat(timespec='seconds')}")
            return cached

    data = await fetch_source_bytes(source.url, timeout=timeout)
    await write_cache(cache_path, data)
    return data
