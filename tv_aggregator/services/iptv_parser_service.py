"""
Channel list parsing

Turns M3U/M3U Plus playlists and "group,#genre#" TXT lists into channel
groups. Entries sharing a name inside a group become one channel whose URL
list keeps every distinct URL in source order.
"""
import logging
import re
from dataclasses import dataclass

from tv_aggregator.errors import SourceParseError
from tv_aggregator.models import Channel, ChannelGroup, ChannelGroupList


logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "Other"

_ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)="([^"]*)"')


@dataclass(slots=True)
class ParsedEntry:
    """One playlist line pair before channels are grouped."""
    group_name: str
    name: str
    epg_name: str
    url: str
    logo: str | None = None


def decode_source(data: bytes) -> str:
    """Decode source bytes as UTF-8, tolerating a BOM and stray bytes."""
    return data.decode("utf-8-sig", errors="replace")


def parse_channel_list(content: str) -> ChannelGroupList:
    """
    Parse a channel list, detecting M3U or TXT format.

    Raises:
        SourceParseError: If no channel could be parsed
    """
    stripped = content.lstrip()
    if stripped.startswith("#EXTM3U"):
        entries = parse_m3u(stripped)
        source_format = "m3u"
    else:
        entries = parse_txt(stripped)
        source_format = "txt"

    groups = build_channel_groups(entries)
    channel_count = sum(len(group.channel_list) for group in groups)
    if not channel_count:
        raise SourceParseError(f"No channels found in channel source ({source_format} format)")

    logger.info(
        f"Channel source parsed ({source_format}): {len(groups)} groups, "
        f"{channel_count} channels, {len(entries)} entries"
    )
    return groups


def parse_m3u(content: str) -> list[ParsedEntry]:
    """Parse #EXTINF entries; the URL is the next non-comment line."""
    entries = []
    pending: tuple[dict[str, str], str] | None = None

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#EXTINF:"):
            attributes, display_name = _split_extinf(line[len("#EXTINF:"):])
            pending = (attributes, display_name)
            continue

        if line.startswith("#"):
            continue

        if pending is None:
            logger.debug(f"Skipping URL without #EXTINF: {line}")
            continue

        attributes, display_name = pending
        pending = None
        name = display_name or attributes.get("tvg-name") or line
        entries.append(ParsedEntry(
            group_name=attributes.get("group-title") or DEFAULT_GROUP_NAME,
            name=name,
            epg_name=attributes.get("tvg-name") or name,
            url=line,
            logo=attributes.get("tvg-logo") or None,
        ))

    return entries


def _split_extinf(body: str) -> tuple[dict[str, str], str]:
    """Split '-1 key="v",Display Name' at the first comma outside quotes."""
    in_quotes = False
    for index, char in enumerate(body):
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            header, name = body[:index], body[index + 1:]
            return dict(_ATTRIBUTE_PATTERN.findall(header)), name.strip()
    return dict(_ATTRIBUTE_PATTERN.findall(body)), ""


def parse_txt(content: str) -> list[ParsedEntry]:
    """
    Parse TXT lists:

        Group,#genre#
        Channel,http://a#http://b
    """
    entries = []
    group_name = DEFAULT_GROUP_NAME

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "," not in line:
            continue

        name, value = (part.strip() for part in line.split(",", 1))
        if value == "#genre#":
            group_name = name or DEFAULT_GROUP_NAME
            continue

        if not name:
            continue

        for url in value.split("#"):
            url = url.strip()
            if url:
                entries.append(ParsedEntry(group_name=group_name, name=name, epg_name=name, url=url))

    return entries


def build_channel_groups(entries: list[ParsedEntry]) -> ChannelGroupList:
    """Group entries by group then by channel name, keeping source order."""
    grouped: dict[str, dict[str, list[ParsedEntry]]] = {}
    for entry in entries:
        grouped.setdefault(entry.group_name, {}).setdefault(entry.name, []).append(entry)

    groups = []
    for group_name, channels in grouped.items():
        channel_list = []
        for name, channel_entries in channels.items():
            first = channel_entries[0]
            channel_list.append(Channel(
                name=name,
                epg_name=first.epg_name,
                url_list=tuple(dict.fromkeys(entry.url for entry in channel_entries)),
                logo=next((entry.logo for entry in channel_entries if entry.logo), None),
            ))
        groups.append(ChannelGroup(name=group_name, channel_list=tuple(channel_list)))

    return tuple(groups)
