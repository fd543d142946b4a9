"""
Similar channel merging

Collapses channels whose names resolve to the same canonical name within a
group, keeping every stream URL once.
"""
import logging
from dataclasses import replace

from tv_aggregator.models import Channel, ChannelGroup, ChannelGroupList
from tv_aggregator.services.alias_service import AliasTable


logger = logging.getLogger(__name__)


def merge_similar_channels(
    groups: ChannelGroupList,
    aliases: AliasTable,
    enabled: bool,
) -> ChannelGroupList:
    """
    Merge alias-equivalent channels inside each group.

    The first channel of each canonical name is the template for the merged
    channel; its name becomes the canonical name and its URL list becomes
    the URLs of all members in encounter order, duplicates dropped.
    Groups are never merged with each other.

    Args:
        groups: Channel groups in source order
        aliases: Alias snapshot used for the whole merge
        enabled: When False, groups are returned unchanged

    Returns:
        Merged channel groups
    """
    if not enabled:
        return groups

    merged_groups = tuple(_merge_group(group, aliases) for group in groups)

    before = sum(len(group.channel_list) for group in groups)
    after = sum(len(group.channel_list) for group in merged_groups)
    logger.info(f"Merged similar channels: {before} -> {after} channels")

    return merged_groups


def _merge_group(group: ChannelGroup, aliases: AliasTable) -> ChannelGroup:
    partitions: dict[str, list[Channel]] = {}
    for channel in group.channel_list:
        partitions.setdefault(aliases.standard_name(channel.name), []).append(channel)

    channels = []
    for canonical_name, members in partitions.items():
        url_list = tuple(dict.fromkeys(url for member in members for url in member.url_list))
        channels.append(replace(members[0], name=canonical_name, url_list=url_list))
        if len(members) > 1:
            logger.debug(
                f"[{group.name}] Merged {len(members)} channels into '{canonical_name}' ({len(url_list)} urls)"
            )

    return replace(group, channel_list=tuple(channels))
