"""Settings for analog conversion, read from ``ANALOG_*`` env vars and ``.env``."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalogSettings(BaseSettings):
    """Process-wide conversion settings."""

    model_config = SettingsConfigDict(
        env_prefix="ANALOG_",
        env_file=(".env", "env.example"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Literal["development", "staging", "production"] = "development"

    # Curve-fit is preferred over linear interpolation unless a spec says "LI[".
    use_curve_fit: bool = True
    # Precision name, e.g. "Double", "Digits20", "Partial7". None selects by point count.
    curve_fit_precision: str | None = None

    default_group_id: str = "default"
    key_prefix: str = "analog."
    channel_count: int = Field(default=8, ge=1, le=64)

    config_path: Path | None = None

    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("default_group_id", "key_prefix")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value
