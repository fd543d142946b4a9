"""
File operation utilities

This module handles source downloads, local source reads and the on-disk
source cache.
"""
import hashlib
import logging
import os
import time
from pathlib import Path
from urllib.parse import ParseResult, unquote, urlparse

import aiofiles
import httpx

from tv_aggregator.errors import SourceConfigurationError, TransientFetchError


logger = logging.getLogger(__name__)


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url


def _parse_source_url(url: str) -> ParseResult:
    try:
        return urlparse(url)
    except ValueError as e:
        raise SourceConfigurationError(f"Malformed source URL {sanitize_url_for_logging(url)}: {e}") from e


def is_remote(url: str) -> bool:
    return _parse_source_url(url).scheme.lower() in ("http", "https")


def local_source_path(url: str) -> Path:
    """
    Resolve a file:// URL or plain path to a local path.

    Raises:
        SourceConfigurationError: If the descriptor uses an unsupported scheme
            or cannot be parsed
    """
    if not url or not url.strip():
        raise SourceConfigurationError("Source URL is empty")

    parsed = _parse_source_url(url)
    scheme = parsed.scheme.lower()
    if scheme == "file":
        return Path(unquote(parsed.path))
    # Single letter schemes are Windows drive letters
    if scheme == "" or len(scheme) == 1:
        return Path(url)
    raise SourceConfigurationError(f"Unsupported source URL scheme '{parsed.scheme}': {sanitize_url_for_logging(url)}")


async def download_bytes(url: str, timeout: float = 30.0) -> bytes:
    """
    Download a source in a single attempt.

    Timeouts, connection errors and 5xx responses are reported as transient
    so the caller's retry policy can decide what to do. 4xx responses are
    not retried.

    Args:
        url: URL to download from
        timeout: HTTP timeout in seconds

    Returns:
        Response body

    Raises:
        TransientFetchError: On network failure or HTTP 5xx
        SourceConfigurationError: On HTTP 4xx
    """
    safe_url = sanitize_url_for_logging(url)
    logger.info(f"Downloading {safe_url}...")

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if 400 <= status < 500:
            logger.error(f"HTTP {status} (client error) from {safe_url}")
            raise SourceConfigurationError(f"HTTP {status} from {safe_url}") from e
        raise TransientFetchError(f"HTTP {status} from {safe_url}") from e
    except httpx.TimeoutException as e:
        raise TransientFetchError(f"Timed out downloading {safe_url}") from e
    except httpx.TransportError as e:
        raise TransientFetchError(f"Failed to download {safe_url}: {type(e).__name__}") from e

    size_mb = len(response.content) / (1024 * 1024)
    logger.info(f"Downloaded {size_mb:.2f} MB from {safe_url}")
    return response.content


async def read_local_bytes(path: Path) -> bytes:
    """
    Read a local source file.

    Raises:
        SourceConfigurationError: If the file does not exist
        TransientFetchError: If the file exists but can't be read
    """
    if not path.is_file():
        raise SourceConfigurationError(f"Source file not found: {path}")
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except OSError as e:
        raise TransientFetchError(f"Failed to read {path}: {e}") from e


async def fetch_source_bytes(url: str, timeout: float = 30.0) -> bytes:
    """Read a source from the network or the local filesystem."""
    if is_remote(url):
        return await download_bytes(url, timeout=timeout)
    return await read_local_bytes(local_source_path(url))


def cache_file_for(cache_dir: str | Path, kind: str, url: str) -> Path:
    """Stable cache file path for a source URL."""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    return Path(cache_dir) / f"{kind}_{digest}.cache"


def cache_modified_at(path: Path) -> float | None:
    """Modification time of a cache file, or None if there is none."""
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def cache_age_seconds(path: Path) -> float | None:
    modified = cache_modified_at(path)
    if modified is None:
        return None
    return max(0.0, time.time() - modified)


async def read_cache(path: Path) -> bytes | None:
    """Return cached bytes, or None if the cache is missing or unreadable."""
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except OSError as e:
        logger.debug(f"Cache miss for {path}: {e}")
        return None


async def write_cache(path: Path, data: bytes) -> bool:
    """
    Write cache atomically (temp file then rename).

    Returns:
        True if written, False if the cache directory isn't writable
    """
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(data)
        os.replace(temp_path, path)
        logger.debug(f"Cached {len(data)} bytes to {path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to write cache file {path}: {e}")
        return False
