"""Configuration management for CampusNav."""

import os
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from dotenv import load_dotenv

# Project root (one level above the package)
PROJECT_ROOT = Path(__file__).parent.parent.parent


class NavigationConfig(BaseModel):
    """Detection arbitration and session policy."""
    locate_threshold: float = Field(default=0.75, gt=0.0, le=1.0)
    destination_threshold: float = Field(default=0.6, gt=0.0, le=1.0)
    arrival_threshold: float = Field(default=0.7, gt=0.0, le=1.0)
    verbose_instructions: bool = Field(default=False)
    max_workers: int = Field(default=2, ge=1, le=8)


class MotionConfig(BaseModel):
    """Movement feed configuration."""
    acceleration_threshold: float = Field(default=1.2, gt=0.0, le=20.0)
    window_size: int = Field(default=10, ge=1, le=200)
    speed_gain: float = Field(default=0.5, ge=0.0, le=10.0)


class SpeechConfig(BaseModel):
    """Spoken feedback configuration."""
    enabled: bool = Field(default=True)
    voice: str = Field(default="Kore")
    model: str = Field(default="gemini-2.5-flash-preview-tts")
    moving_reminder_seconds: float = Field(default=8.0, ge=1.0, le=120.0)
    stationary_reminder_seconds: float = Field(default=20.0, ge=1.0, le=300.0)

    @model_validator(mode="after")
    def validate_reminders(self):
        """Moving users get reminded at least as often as stationary ones."""
        if self.moving_reminder_seconds > self.stationary_reminder_seconds:
            raise ValueError(
                "moving_reminder_seconds must not exceed stationary_reminder_seconds"
            )
        return self


class GeminiConfig(BaseModel):
    """Gemini API configuration."""
    api_key_env: str = Field(default="GEMINI_API_KEY")
    model: str = Field(default="gemini-2.5-flash")
    max_retries: int = Field(default=2, ge=1, le=20)

    @property
    def api_key(self) -> str:
        """Get API key from environment variable."""
        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise ValueError(
                f"API key not found in environment variable '{self.api_key_env}'. "
                f"Please set it in your .env file or environment."
            )
        return api_key


class CameraConfig(BaseModel):
    """Camera configuration."""
    device_index: int = Field(default=0, ge=0)
    jpeg_quality: int = Field(default=80, ge=1, le=100)


class CampusConfig(BaseModel):
    """Campus graph source."""
    graph_file: str = Field(default="config/campus.yaml")

    @property
    def graph_path(self) -> Path:
        """Graph file resolved against the project root when relative."""
        path = Path(self.graph_file)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    console_colors: bool = Field(default=True)
    file: Optional[str] = Field(default=None)
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        allowed = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v = v.upper()
        if v not in allowed:
            raise ValueError(f"level must be one of {allowed}")
        return v


class Settings(BaseModel):
    """Main application settings."""
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    campus: CampusConfig = Field(default_factory=CampusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """
        Load settings from YAML file and environment variables.

        Args:
            config_path: Path to config.yaml file. If None, uses default location.

        Returns:
            Settings instance with loaded configuration.
        """
        load_dotenv()

        if config_path is None:
            config_path = PROJECT_ROOT / "config" / "config.yaml"

        if config_path.exists():
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        else:
            config_data = {}

        return cls(**config_data)


# Singleton instance
_settings: Optional[Settings] = None


def get_settings(config_path: Optional[Path] = None, reload: bool = False) -> Settings:
    """
    Get application settings (singleton pattern).

    Args:
        config_path: Path to config.yaml file. Only used on first call or when reload=True.
        reload: Force reload of settings.

    Returns:
        Settings instance.
    """
    global _settings

    if _settings is None or reload:
        _settings = Settings.load(config_path)

    return _settings
