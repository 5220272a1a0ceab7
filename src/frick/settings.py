import json
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from frick.utils.paths import get_default_data_dir, get_default_log_dir


class Settings(BaseSettings):
    """Application-wide settings managed via .env and config.json."""

    app_name: str = "frick"
    debug: bool = Field(default=False, description="Master toggle for verbose logging")

    # Paths
    data_dir: Path = Field(default_factory=get_default_data_dir)
    log_dir: Path = Field(default_factory=get_default_log_dir)

    def model_post_init(self, __context):
        self.data_dir = self.data_dir.resolve()
        self.log_dir = self.log_dir.resolve()

    @property
    def state_file(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def tag_file(self) -> Path:
        return self.data_dir / "tag.txt"

    # Tag
    tag_phrase: str = "FRICK!!"
    scan_timeout_seconds: float = 30.0
    scan_poll_interval: float = 0.5

    # Profiles
    default_profile_name: str = "Default"
    default_profile_icon: str = "🔒"

    # Enforcement
    category_apps: dict[str, list[str]] = {
        "games": ["steam", "lutris", "heroic"],
        "social": ["discord", "slack", "telegram-desktop"],
        "streaming": ["spotify", "vlc"],
    }
    enforce_interval_seconds: float = 2.0

    # Display
    daily_goal_hours: float = 4.0

    model_config = SettingsConfigDict(
        env_prefix="FRICK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def save(self):
        """Saves current settings to config.json in data_dir."""
        config_path = self.data_dir / "config.json"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        with open(config_path, "w") as f:
            json.dump(data, f, indent=4)


def load_settings() -> Settings:
    """Loads settings, merging with config.json if it exists."""
    initial = Settings()
    config_path = initial.data_dir / "config.json"

    if not config_path.exists():
        return initial

    try:
        with open(config_path) as f:
            config_data = json.load(f)
        merged = {**initial.model_dump(), **config_data}
        return Settings(**merged)
    except (OSError, ValueError):
        return initial


# The single source of truth for the app
settings = load_settings()
