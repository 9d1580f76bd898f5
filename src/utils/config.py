"""Configuration management using environment variables and pydantic."""

from typing import Literal, Optional
from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Polling
    poll_interval_ms: PositiveInt

    # National Rail Configuration
    national_rail_api_url: str
    national_rail_api_key: str = ""
    national_rail_timeout_seconds: float = 30.0
    stations_url: str = (
        "https://raw.githubusercontent.com/davwheat/uk-railway-stations/main/stations.json"
    )

    # Global target (both or neither)
    station_crs: Optional[str] = None
    slack_channel_id: Optional[str] = None

    # Slack Configuration
    slack_bot_token: str = ""
    slack_api_url: str = "https://slack.com/api"

    # Persistence
    state_dir: str = "data/rail_alerts_state"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file_path: Optional[str] = None
    log_max_size_mb: int = 100
    log_backup_count: int = 5

    # Development/Testing
    dry_run: bool = False

    @property
    def global_monitoring_enabled(self) -> bool:
        """Global target is only active when both station and channel are set."""
        return bool(self.station_crs) and bool(self.slack_channel_id)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
