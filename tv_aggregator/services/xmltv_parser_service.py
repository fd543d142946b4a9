from collections.abc import Iterable
from datetime import datetime, timezone, timedelta
from typing import Optional
import gzip
import logging
import zlib

from lxml import etree # type: ignore

from tv_aggregator.errors import SourceParseError
from tv_aggregator.models import Epg, EpgList, EpgProgramme

logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"


def parse_xmltv_bytes(data: bytes, filter_names: Iterable[str]) -> EpgList:
    """
    Parse XMLTV content into per-channel programme lists

    Only channels whose display name (or id) matches one of filter_names are
    kept. Matching ignores case; the returned Epg is keyed by the filter name
    exactly as given so callers can look it up by their own epg name.

    Args:
        data: XMLTV document, plain or gzip-compressed
        filter_names: Epg names of the channels that need a schedule

    Returns:
        Tuple of Epg, one per matched filter name, programmes sorted by start

    Raises:
        SourceParseError: If content is not valid (gzip) XMLTV or has no channels
    """
    if data[:2] == _GZIP_MAGIC:
        logger.debug("  Decompressing gzip XMLTV content...")
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise SourceParseError(f"Invalid gzip EPG content: {e}") from e

    try:
        logger.debug("  Loading XML document...")
        parser = etree.XMLParser(huge_tree=True, resolve_entities=False, no_network=True)
        root = etree.fromstring(data, parser=parser)
        logger.debug(f"  XML document loaded (root tag: {root.tag})")
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise SourceParseError(f"Malformed XMLTV content: {e}") from e

    wanted: dict[str, list[str]] = {}
    for name in filter_names:
        wanted.setdefault(name.strip().casefold(), []).append(name)

    channel_keys, channel_count = _parse_channels(root, wanted)
    if not channel_count:
        raise SourceParseError("No channels found in XMLTV")
    logger.debug(f"    Matched {len(channel_keys)} of {channel_count} channels")

    schedules: dict[str, list[EpgProgramme]] = {}
    for programme in root.iterfind('programme'):
        keys = channel_keys.get(programme.get('channel') or "")
        if not keys:
            continue
        parsed = _parse_single_program(programme)
        if parsed is None:
            continue
        for key in keys:
            schedules.setdefault(key, []).append(parsed)

    epg_list = tuple(
        Epg(channel=key, programmes=tuple(sorted(programmes, key=lambda p: p.start_at)))
        for key, programmes in schedules.items()
    )
    logger.info(
        f"XMLTV parsing complete: {len(epg_list)} channels, "
        f"{sum(len(epg.programmes) for epg in epg_list)} programmes"
    )
    return epg_list


def _parse_channels(root: etree._Element, wanted: dict[str, list[str]]) -> tuple[dict[str, list[str]], int]:
    """Map XMLTV channel ids to the filter names they satisfy"""
    channel_keys: dict[str, list[str]] = {}
    channel_count = 0

    for channel in root.iterfind('channel'):
        xmltv_id = channel.get('id')
        if not xmltv_id:
            logger.debug("Skipping channel with missing ID attribute")
            continue
        channel_count += 1

        candidates = [xmltv_id] + [
            elem.text.strip() for elem in channel.iterfind('display-name') if elem.text
        ]
        matched: list[str] = []
        for candidate in candidates:
            for key in wanted.get(candidate.casefold(), []):
                if key not in matched:
                    matched.append(key)
        if matched:
            keys = channel_keys.setdefault(xmltv_id, [])
            keys.extend([key for key in matched if key not in keys])

    return channel_keys, channel_count


def _parse_single_program(programme: etree._Element) -> Optional[EpgProgramme]:
    """Parse single programme element"""
    start_str = programme.get('start')
    stop_str = programme.get('stop')
    title = _get_text(programme, 'title')

    # Skip if missing required fields
    if not start_str or not stop_str or title is None:
        return None

    # Parse times (skip invalid formats)
    try:
        start_time = _parse_xmltv_time(start_str)
        stop_time = _parse_xmltv_time(stop_str)
    except (ValueError, IndexError, KeyError):
        return None

    return EpgProgramme(title=title, start_at=start_time, end_at=stop_time)


def _parse_xmltv_time(time_str: str) -> datetime:
    """
    Convert XMLTV time format to a UTC datetime

    Args:
        time_str: XMLTV time like '20080715003000 -0600'

    Returns:
        Timezone-aware datetime in UTC
    """
    # Split time and timezone
    parts = time_str.strip().split()
    time_part = parts[0][:14]  # YYYYMMDDHHMMSS
    tz_part = parts[1] if len(parts) > 1 else '+0000'

    dt = datetime.strptime(time_part, '%Y%m%d%H%M%S')

    # Parse timezone offset (+/-HHMM)
    tz_sign = 1 if tz_part[0] == '+' else -1
    tz_hours = int(tz_part[1:3])
    tz_mins = int(tz_part[3:5])
    tz_offset_minutes = tz_sign * (tz_hours * 60 + tz_mins)

    dt_utc = dt - timedelta(minutes=tz_offset_minutes)

    return dt_utc.replace(tzinfo=timezone.utc)


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
