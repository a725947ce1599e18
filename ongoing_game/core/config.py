"""Process configuration for the ongoing-game engine."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class AppConfig(BaseSettings):
    """Engine configuration loaded from environment variables.

    User-facing feature settings (concurrency, load counts, ...) live in
    ``OngoingGameSettings`` and are persisted through the settings store; this
    class only covers how the process itself is wired.
    """

    # Application Configuration
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    # Local client (LCU) connection
    lcu_host: str = Field(default="127.0.0.1")
    lcu_port: int = Field(default=0, description="Port announced by the client lockfile")
    lcu_password: str = Field(default="", description="Password announced by the client lockfile")
    lcu_verify_tls: bool = Field(default=False)

    # Remote aggregation (SGP) connection
    sgp_base_url: str = Field(default="")
    sgp_platform_id: str = Field(default="", description="RSO platform id used in remote game ids")
    sgp_timeout_seconds: float = Field(default=25.0)

    # Engine tuning
    game_cache_capacity: int = Field(default=400)
    analysis_debounce_seconds: float = Field(default=0.2)
    match_history_refresh_debounce_seconds: float = Field(default=0.25)

    @property
    def lcu_base_url(self) -> str:
        """Construct the local client base URL from components."""
        return f"https://{self.lcu_host}:{self.lcu_port}"

    @field_validator("game_cache_capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        """Reject caches that could never hold a single game."""
        if v < 1:
            raise ValueError(f"game_cache_capacity must be at least 1, got {v}")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="ONGOING_GAME_",
        extra="ignore",
    )


def get_config() -> AppConfig:
    """Get engine configuration instance."""
    return AppConfig()


# Create a global config instance lazily
config: AppConfig | None = None


def get_global_config() -> AppConfig:
    """Get or create the global config instance."""
    global config
    if config is None:
        config = get_config()
    return config
