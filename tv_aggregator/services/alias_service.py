"""
Channel Alias Service

Maps differently spelled channel names to one canonical name.

The alias table is an immutable snapshot. ChannelAlias.refresh() swaps in a
new snapshot; a merge that already holds the old one keeps using it.
"""
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType

import aiofiles
import httpx

from tv_aggregator.config import AggregatorSettings


logger = logging.getLogger(__name__)

AliasMapping = Mapping[str, Sequence[str]]
AliasLoader = Callable[[], Awaitable[AliasMapping]]


def _alias_key(name: str) -> str:
    return name.strip().casefold()


class AliasTable:
    """Read-only lookup from any known spelling to the canonical channel name."""

    __slots__ = ("_lookup",)

    def __init__(self, lookup: Mapping[str, str] | None = None):
        self._lookup = MappingProxyType(dict(lookup or {}))

    @classmethod
    def from_mapping(cls, mapping: AliasMapping) -> "AliasTable":
        """
        Build a table from {canonical: [alias, ...]}.

        The first canonical name claiming an alias keeps it.
        """
        lookup: dict[str, str] = {}
        for canonical, aliases in mapping.items():
            lookup.setdefault(_alias_key(canonical), canonical)
            for alias in aliases:
                key = _alias_key(alias)
                if key in lookup and lookup[key] != canonical:
                    logger.debug(f"Alias '{alias}' already maps to '{lookup[key]}', ignoring '{canonical}'")
                    continue
                lookup[key] = canonical
        return cls(lookup)

    def standard_name(self, raw_name: str) -> str:
        """Canonical name for raw_name; unknown names are returned unchanged."""
        return self._lookup.get(_alias_key(raw_name), raw_name)

    def __len__(self) -> int:
        return len(self._lookup)


class ChannelAlias:
    """Owns the current alias snapshot and reloads it on request."""

    def __init__(self, loader: AliasLoader | None = None):
        self._loader = loader
        self._table = AliasTable()

    @property
    def snapshot(self) -> AliasTable:
        return self._table

    async def refresh(self) -> AliasTable:
        """
        Reload the alias table from the loader.

        A loader failure keeps the previous snapshot; alias problems degrade
        merging but never fail a pipeline run.
        """
        if self._loader is None:
            return self._table

        try:
            mapping = await self._loader()
        except (OSError, ValueError, httpx.HTTPError) as exc:
            logger.warning(f"Failed to reload channel aliases, keeping previous table: {exc}")
            return self._table

        self._table = AliasTable.from_mapping(mapping)
        logger.info(f"Channel alias table loaded: {len(self._table)} names")
        return self._table


def _validate_alias_mapping(data: object, origin: str) -> dict[str, list[str]]:
    if not isinstance(data, dict):
        raise ValueError(f"Alias table from {origin} must be a JSON object")

    mapping: dict[str, list[str]] = {}
    for canonical, aliases in data.items():
        if isinstance(aliases, str):
            aliases = [aliases]
        if not isinstance(aliases, list) or not all(isinstance(alias, str) for alias in aliases):
            raise ValueError(f"Aliases for '{canonical}' in {origin} must be a list of strings")
        mapping[str(canonical)] = aliases
    return mapping


async def load_alias_mapping(
    alias_file: str | None,
    alias_url: str | None,
    timeout: float = 30.0,
) -> dict[str, list[str]]:
    """
    Load {canonical: [alias, ...]} from a remote URL and/or a local JSON file.

    Local file entries win over remote entries with the same canonical name.

    Raises:
        OSError: If the file can't be read
        ValueError: If the JSON is malformed
        httpx.HTTPError: If the remote table can't be downloaded
    """
    mapping: dict[str, list[str]] = {}

    if alias_url:
        logger.debug(f"Downloading channel aliases from {alias_url}")
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(alias_url)
            response.raise_for_status()
        mapping.update(_validate_alias_mapping(json.loads(response.text), alias_url))

    if alias_file:
        logger.debug(f"Reading channel aliases from {alias_file}")
        async with aiofiles.open(Path(alias_file), "r", encoding="utf-8") as f:
            content = await f.read()
        mapping.update(_validate_alias_mapping(json.loads(content), alias_file))

    return mapping


def alias_loader_from_settings(app_settings: AggregatorSettings) -> AliasLoader:
    """Loader reading the alias sources named in the settings at call time."""

    async def _load() -> AliasMapping:
        return await load_alias_mapping(
            app_settings.channel_alias_file,
            app_settings.channel_alias_url,
            timeout=app_settings.http_timeout_sec,
        )

    return _load
