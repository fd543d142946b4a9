"""
Hybrid URL resolution

Adds browser-rendered (web player) stream URLs to channels, before or after
their direct stream URLs depending on the configured HybridMode.
"""
import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from pathlib import Path

from tv_aggregator.models import ChannelGroupList, HybridMode


logger = logging.getLogger(__name__)

HybridLookup = Callable[[str], Sequence[str]]

_YANGSHIPIN_PIDS = {
    "CCTV1": "600001859",
    "CCTV2": "600001800",
    "CCTV3": "600001801",
    "CCTV4": "600001814",
    "CCTV5": "600001818",
    "CCTV5+": "600001817",
    "CCTV6": "600108442",
    "CCTV7": "600004092",
    "CCTV8": "600001803",
    "CCTV9": "600004078",
    "CCTV10": "600001805",
    "CCTV11": "600001806",
    "CCTV12": "600001807",
    "CCTV13": "600001811",
    "CCTV14": "600001809",
    "CCTV15": "600001815",
    "CCTV16": "600098637",
    "CCTV17": "600001810",
}

DEFAULT_HYBRID_URLS: dict[str, list[str]] = {
    name: [
        f"https://tv.cctv.com/live/{name.lower().replace('+', 'plus')}/",
        f"https://yangshipin.cn/tv/home?pid={pid}",
    ]
    for name, pid in _YANGSHIPIN_PIDS.items()
}


class HybridUrlLookup:
    """Pure lookup from channel name to web player URLs."""

    def __init__(self, table: Mapping[str, Sequence[str]] | None = None):
        self._exact = {name: list(urls) for name, urls in (table or {}).items()}
        self._folded = {name.casefold(): urls for name, urls in self._exact.items()}

    @classmethod
    def default(cls) -> "HybridUrlLookup":
        return cls(DEFAULT_HYBRID_URLS)

    @classmethod
    def from_file(cls, path: str | Path) -> "HybridUrlLookup":
        """
        Load {channel name: [url, ...]} from JSON, layered over the defaults.

        Raises:
            OSError: If the file can't be read
            ValueError: If the file isn't a JSON object of string lists
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Hybrid URL table {path} must be a JSON object")

        table = dict(DEFAULT_HYBRID_URLS)
        for name, urls in data.items():
            if isinstance(urls, str):
                urls = [urls]
            if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
                raise ValueError(f"Hybrid URLs for '{name}' in {path} must be a list of strings")
            table[name] = urls

        logger.info(f"Loaded {len(data)} hybrid URL entries from {path}")
        return cls(table)

    def __call__(self, channel_name: str) -> list[str]:
        urls = self._exact.get(channel_name)
        if urls is None:
            urls = self._folded.get(channel_name.strip().casefold(), [])
        return list(urls)


def resolve_hybrid_urls(
    groups: ChannelGroupList,
    mode: HybridMode,
    lookup: HybridLookup,
) -> ChannelGroupList:
    """
    Add hybrid URLs to every channel according to mode.

    IPTV_FIRST appends them after the channel's own URLs, HYBRID_FIRST puts
    them in front. Channels without hybrid URLs are left as they are.
    No deduplication happens here.
    """
    if mode is HybridMode.DISABLE:
        return groups

    resolved = 0
    new_groups = []
    for group in groups:
        channels = []
        for channel in group.channel_list:
            hybrid_urls = tuple(lookup(channel.name) or ())
            if not hybrid_urls:
                channels.append(channel)
                continue

            resolved += 1
            if mode is HybridMode.IPTV_FIRST:
                url_list = channel.url_list + hybrid_urls
            else:
                url_list = hybrid_urls + channel.url_list
            channels.append(replace(channel, url_list=url_list))
        new_groups.append(replace(group, channel_list=tuple(channels)))

    logger.info(f"Hybrid mode {mode.value}: added web player URLs to {resolved} channels")
    return tuple(new_groups)
