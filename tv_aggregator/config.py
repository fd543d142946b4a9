import logging

from croniter import croniter
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tv_aggregator.models import EpgSource, HybridMode, IptvSource


logger = logging.getLogger(__name__)


class PipelineConfig(BaseModel):
    """Immutable configuration snapshot taken once per pipeline run."""

    model_config = ConfigDict(frozen=True)

    iptv_source: IptvSource | None = None
    iptv_source_cache_ttl_sec: int = 86400
    iptv_similar_channel_merge: bool = False
    iptv_hybrid_mode: HybridMode = HybridMode.DISABLE
    epg_enable: bool = True
    epg_source: EpgSource | None = None
    epg_refresh_time_threshold: int = 2
    network_retry_count: int = 10
    network_retry_interval_sec: float = 3.0


class AggregatorSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    iptv_source_name: str = "default"
    iptv_source_url: str | None = None
    iptv_source_cache_ttl_sec: int = 86400  # One day
    iptv_similar_channel_merge: bool = False
    iptv_hybrid_mode: HybridMode = HybridMode.DISABLE
    hybrid_url_file: str | None = None

    epg_enable: bool = True
    epg_source_name: str = "default"
    epg_source_url: str | None = None
    epg_refresh_time_threshold: int = 2  # Hour of day the EPG source publishes

    network_retry_count: int = 10
    network_retry_interval_sec: float = 3.0

    channel_alias_file: str | None = None
    channel_alias_url: str | None = None

    cache_dir: str = "./data/cache"
    http_timeout_sec: float = 30.0
    refresh_cron: str | None = None  # Crontab evaluated in UTC
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("iptv_source_url", "epg_source_url", "channel_alias_url", "refresh_cron", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        """Treat empty strings from the environment as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("iptv_hybrid_mode", mode="before")
    @classmethod
    def parse_hybrid_mode(cls, value):
        """Accept enum names as well as values (IPTV_FIRST or iptv_first)."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("iptv_source_cache_ttl_sec")
    @classmethod
    def validate_cache_ttl(cls, value: int) -> int:
        """Validate channel source cache TTL (seconds)."""
        if value < 0:
            raise ValueError("iptv_source_cache_ttl_sec must be >= 0")
        return value

    @field_validator("epg_refresh_time_threshold")
    @classmethod
    def validate_refresh_threshold(cls, value: int) -> int:
        """Validate the EPG refresh threshold is an hour of the day."""
        if not 0 <= value <= 23:
            raise ValueError("epg_refresh_time_threshold must be between 0 and 23")
        return value

    @field_validator("network_retry_count")
    @classmethod
    def validate_retry_count(cls, value: int) -> int:
        """Ensure at least one fetch attempt is made."""
        if value < 1:
            raise ValueError("network_retry_count must be >= 1")
        return value

    @field_validator("network_retry_interval_sec", "http_timeout_sec")
    @classmethod
    def validate_non_negative_floats(cls, value: float, info) -> float:
        """Ensure durations are not negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("refresh_cron")
    @classmethod
    def validate_cron_expression(cls, value: str | None) -> str | None:
        """Validate cron expression is valid."""
        if value is None:
            return value
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    def pipeline_config(self) -> PipelineConfig:
        """Snapshot the settings a pipeline run depends on."""
        iptv_source = None
        if self.iptv_source_url:
            iptv_source = IptvSource(name=self.iptv_source_name, url=self.iptv_source_url)

        epg_source = None
        if self.epg_source_url:
            epg_source = EpgSource(name=self.epg_source_name, url=self.epg_source_url)

        return PipelineConfig(
            iptv_source=iptv_source,
            iptv_source_cache_ttl_sec=self.iptv_source_cache_ttl_sec,
            iptv_similar_channel_merge=self.iptv_similar_channel_merge,
            iptv_hybrid_mode=self.iptv_hybrid_mode,
            epg_enable=self.epg_enable,
            epg_source=epg_source,
            epg_refresh_time_threshold=self.epg_refresh_time_threshold,
            network_retry_count=self.network_retry_count,
            network_retry_interval_sec=self.network_retry_interval_sec,
        )

    def log_summary(self) -> None:
        """Log the loaded configuration."""
        logger.info("Configuration loaded:")
        logger.info(f"  Channel Source: {self.iptv_source_url or 'not configured'}")
        logger.info(f"  Channel Cache TTL: {self.iptv_source_cache_ttl_sec}s")
        logger.info(f"  Similar Channel Merge: {self.iptv_similar_channel_merge}")
        logger.info(f"  Hybrid Mode: {self.iptv_hybrid_mode.value}")
        logger.info(f"  EPG: {'enabled' if self.epg_enable else 'disabled'}")
        logger.info(f"  EPG Source: {self.epg_source_url or 'not configured'}")
        logger.info(f"  EPG Refresh Threshold: {self.epg_refresh_time_threshold:02d}:00")
        logger.info(
            f"  Network Retry: {self.network_retry_count} attempts, "
            f"{self.network_retry_interval_sec:.1f}s interval"
        )
        logger.info(f"  Alias File: {self.channel_alias_file or 'none'}")
        logger.info(f"  Alias URL: {self.channel_alias_url or 'none'}")
        logger.info(f"  Cache Directory: {self.cache_dir}")
        logger.info(f"  Refresh Schedule: {self.refresh_cron or 'manual only'}")


settings = AggregatorSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
