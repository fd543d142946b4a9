"""
Channel Source Service

Fetches the raw channel list for a source, reusing the cached copy while it
is younger than the configured TTL, and parses it into channel groups.
"""
import asyncio
import logging
from pathlib import Path

from tv_aggregator.models import ChannelGroupList, IptvSource
from tv_aggregator.services.iptv_parser_service import decode_source, parse_channel_list
from tv_aggregator.utils.file_operations import (
    cache_age_seconds,
    cache_file_for,
    fetch_source_bytes,
    is_remote,
    read_cache,
    sanitize_url_for_logging,
    write_cache,
)


logger = logging.getLogger(__name__)


async def fetch_channels(
    source: IptvSource,
    cache_ttl_sec: int,
    *,
    cache_dir: str | Path,
    timeout: float = 30.0,
) -> ChannelGroupList:
    """
    Fetch and parse the channel list of a source.

    Args:
        source: Channel source descriptor
        cache_ttl_sec: Maximum age of a cached copy that may be reused

    Keyword Args:
        cache_dir: Directory holding cached source content
        timeout: HTTP timeout in seconds

    Returns:
        Parsed channel groups

    Raises:
        TransientFetchError: If the source could not be reached
        SourceParseError: If the content holds no channels
        SourceConfigurationError: If the descriptor is unusable
    """
    safe_url = sanitize_url_for_logging(source.url)
    logger.info(f"[{source.name}] Fetching channel source {safe_url}")

    data = await _load_channel_source(source, cache_ttl_sec, Path(cache_dir), timeout)

    logger.debug(f"[{source.name}] Offloading channel list parsing to thread pool executor...")
    loop = asyncio.get_running_loop()
    content = decode_source(data)
    return await loop.run_in_executor(None, parse_channel_list, content)


async def _load_channel_source(
    source: IptvSource,
    cache_ttl_sec: int,
    cache_dir: Path,
    timeout: float,
) -> bytes:
    if not is_remote(source.url):
        return await fetch_source_bytes(source.url, timeout=timeout)

    cache_path = cache_file_for(cache_dir, "iptv", source.url)
    age = cache_age_seconds(cache_path)
    if age is not None and age <= cache_ttl_sec:
        cached = await read_cache(cache_path)
        if cached:
            logger.info(f"[{source.name}] Using cached channel list ({age:.0f}s old)")
            return cached

    data = await fetch_source_bytes(source.url, timeout=timeout)
    await write_cache(cache_path, data)
    return data
