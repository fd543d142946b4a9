"""
Observable pipeline state.

`PipelineState` is a closed union of three variants. Consumers match on it
exhaustively; `assert_never` makes a missing branch a type error.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import assert_never

from tv_aggregator.models import ChannelGroupList, EpgList


@dataclass(frozen=True, slots=True)
class Loading:
    message: str | None = None


@dataclass(frozen=True, slots=True)
class Error:
    message: str | None = None


@dataclass(frozen=True, slots=True)
class Ready:
    channel_group_list: ChannelGroupList = ()
    epg_list: EpgList = ()

    def with_epg(self, epg_list: EpgList) -> Ready:
        """Copy with only the EPG replaced."""
        return replace(self, epg_list=epg_list)


PipelineState = Loading | Error | Ready


def state_kind(state: PipelineState) -> str:
    """Short lowercase name of the variant."""
    match state:
        case Loading():
            return "loading"
        case Error():
            return "error"
        case Ready():
            return "ready"
        case _:
            assert_never(state)


def describe_state(state: PipelineState) -> str:
    """One-line human-readable summary used in logs and health checks."""
    match state:
        case Loading(message=message):
            return f"loading: {message}" if message else "loading"
        case Error(message=message):
            return f"error: {message or 'unknown error'}"
        case Ready(channel_group_list=groups, epg_list=epg_list):
            channel_count = sum(len(group.channel_list) for group in groups)
            return f"ready: {len(groups)} groups, {channel_count} channels, {len(epg_list)} epg channels"
        case _:
            assert_never(state)
