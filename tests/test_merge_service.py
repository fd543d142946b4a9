"""
Tests for alias normalization and similar channel merging.
"""
import json

import pytest

from tv_aggregator.services.alias_service import AliasTable, ChannelAlias, load_alias_mapping
from tv_aggregator.services.merge_service import merge_similar_channels
from tests.helpers import make_channel, make_group


ALIASES = AliasTable.from_mapping({
    "CCTV1": ["CCTV-1", "cctv1", "CCTV-1 综合"],
    "CCTV5+": ["CCTV-5+", "CCTV5 Plus"],
})


class TestAliasTable:
    """Test canonical name lookup."""

    def test_known_aliases_map_to_canonical(self):
        assert ALIASES.standard_name("CCTV-1") == "CCTV1"
        assert ALIASES.standard_name("CCTV-1 综合") == "CCTV1"
        assert ALIASES.standard_name("cctv5 plus") == "CCTV5+"

    def test_canonical_maps_to_itself(self):
        assert ALIASES.standard_name("CCTV1") == "CCTV1"
        assert ALIASES.standard_name("cctv5+") == "CCTV5+"

    def test_unknown_name_passes_through(self):
        assert ALIASES.standard_name("Local News") == "Local News"

    def test_first_canonical_keeps_contested_alias(self):
        table = AliasTable.from_mapping({"A": ["x"], "B": ["x"]})
        assert table.standard_name("x") == "A"


class TestChannelAlias:
    """Test explicit reloading of the alias snapshot."""

    @pytest.mark.asyncio
    async def test_refresh_swaps_snapshot(self):
        mappings = [{"CCTV1": ["CCTV-1"]}, {"CCTV1": ["cctv 1"]}]

        async def loader():
            return mappings.pop(0)

        alias = ChannelAlias(loader)
        assert alias.snapshot.standard_name("CCTV-1") == "CCTV-1"

        first = await alias.refresh()
        assert alias.snapshot.standard_name("CCTV-1") == "CCTV1"

        second = await alias.refresh()
        assert second is alias.snapshot
        assert first.standard_name("CCTV-1") == "CCTV1"
        assert second.standard_name("CCTV-1") == "CCTV-1"
        assert second.standard_name("cctv 1") == "CCTV1"

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_snapshot(self):
        calls = []

        async def loader():
            calls.append(1)
            if len(calls) > 1:
                raise OSError("alias file vanished")
            return {"CCTV1": ["CCTV-1"]}

        alias = ChannelAlias(loader)
        await alias.refresh()
        table = await alias.refresh()

        assert table.standard_name("CCTV-1") == "CCTV1"

    @pytest.mark.asyncio
    async def test_no_loader_keeps_empty_table(self):
        alias = ChannelAlias()
        table = await alias.refresh()
        assert len(table) == 0

    @pytest.mark.asyncio
    async def test_load_alias_mapping_from_file(self, tmp_path):
        path = tmp_path / "alias.json"
        path.write_text(json.dumps({"CCTV1": ["CCTV-1"], "Hunan": "湖南卫视"}), encoding="utf-8")

        mapping = await load_alias_mapping(str(path), None)

        assert mapping == {"CCTV1": ["CCTV-1"], "Hunan": ["湖南卫视"]}

    @pytest.mark.asyncio
    async def test_load_alias_mapping_rejects_non_object(self, tmp_path):
        path = tmp_path / "alias.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ValueError):
            await load_alias_mapping(str(path), None)

    @pytest.mark.asyncio
    async def test_load_alias_mapping_nothing_configured(self):
        assert await load_alias_mapping(None, None) == {}


class TestMergeSimilarChannels:
    """Test per-group merging of alias-equivalent channels."""

    def test_alias_equivalent_channels_are_merged_in_order(self):
        groups = (make_group(
            "CCTV",
            make_channel("CCTV-1", "a", "b", logo="logo-1"),
            make_channel("cctv1", "b", "c"),
        ),)

        merged = merge_similar_channels(groups, ALIASES, enabled=True)

        (channel,) = merged[0].channel_list
        assert channel.name == "CCTV1"
        assert channel.url_list == ("a", "b", "c")

    def test_first_channel_is_the_template(self):
        groups = (make_group(
            "CCTV",
            make_channel("CCTV-1", "a", epg_name="cctv1-epg", logo="first.png"),
            make_channel("CCTV1", "b", epg_name="other-epg", logo="second.png"),
        ),)

        (channel,) = merge_similar_channels(groups, ALIASES, enabled=True)[0].channel_list

        assert channel.epg_name == "cctv1-epg"
        assert channel.logo == "first.png"

    def test_merged_url_lists_have_no_duplicates(self):
        groups = (make_group(
            "CCTV",
            make_channel("CCTV-1", "a", "b", "a"),
            make_channel("CCTV1", "b", "a", "d"),
            make_channel("CCTV-5+", "x"),
            make_channel("CCTV5 Plus", "x", "x"),
        ),)

        for channel in merge_similar_channels(groups, ALIASES, enabled=True)[0].channel_list:
            assert len(channel.url_list) == len(set(channel.url_list))

    def test_partition_order_follows_first_encounter(self):
        groups = (make_group(
            "Mixed",
            make_channel("News", "n"),
            make_channel("CCTV-1", "a"),
            make_channel("Sports", "s"),
            make_channel("cctv1", "b"),
        ),)

        merged = merge_similar_channels(groups, ALIASES, enabled=True)

        assert [channel.name for channel in merged[0].channel_list] == ["News", "CCTV1", "Sports"]

    def test_groups_are_merged_independently(self):
        groups = (
            make_group("Group A", make_channel("CCTV-1", "a")),
            make_group("Group B", make_channel("cctv1", "b")),
        )

        merged = merge_similar_channels(groups, ALIASES, enabled=True)

        assert [group.name for group in merged] == ["Group A", "Group B"]
        assert merged[0].channel_list[0].url_list == ("a",)
        assert merged[1].channel_list[0].url_list == ("b",)
        assert merged[1].channel_list[0].name == "CCTV1"

    def test_disabled_merge_is_identity(self):
        groups = (make_group("CCTV", make_channel("CCTV-1", "a"), make_channel("cctv1", "b")),)

        assert merge_similar_channels(groups, ALIASES, enabled=False) is groups

    def test_merge_does_not_mutate_input(self):
        original = make_channel("CCTV-1", "a")
        groups = (make_group("CCTV", original, make_channel("cctv1", "b")),)

        merge_similar_channels(groups, ALIASES, enabled=True)

        assert groups[0].channel_list[0] is original
        assert original.url_list == ("a",)
