"""
Tests for settings validation and per-run configuration snapshots.
"""
import pytest
from pydantic import ValidationError

from tv_aggregator.config import AggregatorSettings, PipelineConfig
from tv_aggregator.models import HybridMode


def make_settings(**values) -> AggregatorSettings:
    return AggregatorSettings(_env_file=None, **values)


class TestAggregatorSettings:
    """Test settings defaults and validators."""

    def test_defaults(self):
        app_settings = make_settings()

        assert app_settings.network_retry_count == 10
        assert app_settings.network_retry_interval_sec == 3.0
        assert app_settings.iptv_source_cache_ttl_sec == 86400
        assert app_settings.epg_refresh_time_threshold == 2
        assert app_settings.iptv_hybrid_mode is HybridMode.DISABLE

    @pytest.mark.parametrize("raw", ["IPTV_FIRST", "iptv_first", " Iptv_First "])
    def test_hybrid_mode_names_are_case_insensitive(self, raw):
        assert make_settings(iptv_hybrid_mode=raw).iptv_hybrid_mode is HybridMode.IPTV_FIRST

    def test_unknown_hybrid_mode_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(iptv_hybrid_mode="sometimes")

    def test_blank_urls_are_unset(self):
        app_settings = make_settings(iptv_source_url="  ", refresh_cron="")

        assert app_settings.iptv_source_url is None
        assert app_settings.refresh_cron is None

    @pytest.mark.parametrize(
        "field,value",
        [
            ("network_retry_count", 0),
            ("iptv_source_cache_ttl_sec", -1),
            ("epg_refresh_time_threshold", 24),
            ("network_retry_interval_sec", -0.5),
            ("refresh_cron", "not a cron"),
            ("log_level", "LOUD"),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            make_settings(**{field: value})

    def test_valid_cron_accepted(self):
        assert make_settings(refresh_cron="0 */6 * * *").refresh_cron == "0 */6 * * *"

    def test_log_level_normalized(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"


class TestPipelineConfigSnapshot:
    """Test the frozen per-run configuration."""

    def test_sources_built_from_urls(self):
        app_settings = make_settings(
            iptv_source_name="home",
            iptv_source_url="http://example.com/live.m3u",
            epg_source_url="http://example.com/epg.xml.gz",
            network_retry_count=4,
        )

        config = app_settings.pipeline_config()

        assert config.iptv_source.name == "home"
        assert config.iptv_source.url == "http://example.com/live.m3u"
        assert config.epg_source.url == "http://example.com/epg.xml.gz"
        assert config.network_retry_count == 4

    def test_missing_urls_leave_sources_unset(self):
        config = make_settings().pipeline_config()

        assert config.iptv_source is None
        assert config.epg_source is None

    def test_snapshot_is_immutable(self):
        config = PipelineConfig()

        with pytest.raises(ValidationError):
            config.network_retry_count = 1
