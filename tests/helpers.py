"""Shared builders and fakes for the test suite."""
import asyncio

from tv_aggregator.config import PipelineConfig
from tv_aggregator.models import Channel, ChannelGroup, EpgSource, IptvSource
from tv_aggregator.services.state_store import PipelineStateStore


def make_channel(name: str, *urls: str, epg_name: str | None = None, logo: str | None = None) -> Channel:
    return Channel(name=name, epg_name=epg_name or name, url_list=tuple(urls), logo=logo)


def make_group(name: str, *channels: Channel) -> ChannelGroup:
    return ChannelGroup(name=name, channel_list=tuple(channels))


def make_config(**overrides) -> PipelineConfig:
    values = {
        "iptv_source": IptvSource(name="test", url="http://example.com/live.m3u"),
        "epg_source": EpgSource(name="test", url="http://example.com/epg.xml"),
        "network_retry_count": 3,
        "network_retry_interval_sec": 0,
        "epg_enable": True,
    }
    values.update(overrides)
    return PipelineConfig(**values)


class ScriptedFetch:
    """
    Async fetch fake that plays back a script of results.

    Each entry is either a value to return or an exception to raise; the
    last entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[tuple] = []

    async def __call__(self, *args):
        self.calls.append(args)
        index = min(len(self.calls), len(self.script)) - 1
        result = self.script[index]
        await asyncio.sleep(0)
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingStore(PipelineStateStore):
    """State store that remembers every accepted publication."""

    def __init__(self):
        super().__init__()
        self.history = []

    def publish(self, run_id, state):
        accepted = super().publish(run_id, state)
        if accepted:
            self.history.append(state)
        return accepted
