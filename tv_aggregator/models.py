"""
Domain models for the channel aggregation pipeline.

Channel and EPG records are immutable; every transform builds new tuples
instead of mutating what a previous stage produced.
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class Channel:
    """A playable channel. `url_list` is ordered by playback priority."""
    name: str
    epg_name: str
    url_list: tuple[str, ...] = ()
    logo: str | None = None


@dataclass(frozen=True, slots=True)
class ChannelGroup:
    """A named group of channels in source order."""
    name: str
    channel_list: tuple[Channel, ...] = ()


ChannelGroupList = tuple[ChannelGroup, ...]


@dataclass(frozen=True, slots=True)
class EpgProgramme:
    """A single schedule entry with UTC-aware start and end."""
    title: str
    start_at: datetime
    end_at: datetime


@dataclass(frozen=True, slots=True)
class Epg:
    """Programme schedule for one channel, keyed by the channel's epg name."""
    channel: str
    programmes: tuple[EpgProgramme, ...] = field(default_factory=tuple)


EpgList = tuple[Epg, ...]


class HybridMode(str, Enum):
    """Where browser-rendered stream URLs go relative to the direct ones."""
    DISABLE = "disable"
    IPTV_FIRST = "iptv_first"
    HYBRID_FIRST = "hybrid_first"


class IptvSource(BaseModel):
    """Channel list source descriptor"""
    model_config = ConfigDict(frozen=True)

    name: str = Field("default", description="Human-readable source name")
    url: str = Field(..., description="http(s):// URL, file:// URL or local path")


class EpgSource(BaseModel):
    """XMLTV programme guide source descriptor"""
    model_config = ConfigDict(frozen=True)

    name: str = Field("default", description="Human-readable source name")
    url: str = Field(..., description="http(s):// URL, file:// URL or local path")


def iter_channels(groups: ChannelGroupList) -> Iterator[Channel]:
    """Yield every channel of every group in order."""
    for group in groups:
        yield from group.channel_list


def epg_names(groups: ChannelGroupList) -> list[str]:
    """Distinct epg names across all groups, in first-seen order."""
    return list(dict.fromkeys(channel.epg_name for channel in iter_channels(groups)))


__all__ = [
    "Channel",
    "ChannelGroup",
    "ChannelGroupList",
    "EpgProgramme",
    "Epg",
    "EpgList",
    "HybridMode",
    "IptvSource",
    "EpgSource",
    "iter_channels",
    "epg_names",
]
