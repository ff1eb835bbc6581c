"""
Configuration management using environment variables.
Handles all trigger settings with proper validation and defaults.
"""

import math
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trigger.models import TriggerSettings

DEFAULT_INTERVAL_SECONDS = 10.0

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a duration into seconds.

    Accepts bare numbers (seconds) and Go-style duration strings such as
    ``"10s"``, ``"1m30s"``, ``"500ms"`` or ``"1h"``.
    """
    if isinstance(value, bool):
        raise ValueError("duration must be a number or a duration string")
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    if not text:
        raise ValueError("duration is empty")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
        if not text:
            raise ValueError(f"invalid duration: {value!r}")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration: {value!r}")
        return sign * seconds

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


class TriggerConfig(BaseSettings):
    """
    Configuration class for the clock trigger.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Endpoints
    source_url: str = Field(validation_alias=AliasChoices("source_url", "SOURCE_URL", "PARAGLIDING_URL"))
    webhook_url: str = Field(validation_alias=AliasChoices("webhook_url", "WEBHOOK_URL", "SLACK_WEBHOOK_URL"))

    # Scheduling
    clock_interval: Optional[float] = Field(default=None, description="Seconds between ticks; unset or 0 uses the default")

    # HTTP
    request_timeout: float = Field(default=10.0)
    user_agent: str = Field(default="ClockTrigger/1.0")

    # Messages
    item_noun: str = Field(default="track")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")
    log_file: Optional[str] = Field(default=None)

    # Development
    debug: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("source_url", "webhook_url")
    @classmethod
    def validate_url(cls, v):
        """Ensure endpoints are absolute http(s) URLs."""
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("must be an absolute http(s) URL")
        return v.strip()

    @field_validator("clock_interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        """Parse duration strings and reject negative intervals."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        seconds = parse_duration(v)
        if seconds < 0:
            raise ValueError("clock_interval must not be negative")
        return seconds

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError("request_timeout must be between 1 and 300 seconds")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @property
    def uses_default_interval(self) -> bool:
        return not self.clock_interval

    def get_interval_seconds(self) -> float:
        """Tick interval, falling back to the default when unset or zero."""
        if self.uses_default_interval:
            return DEFAULT_INTERVAL_SECONDS
        return self.clock_interval

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def to_settings(self) -> TriggerSettings:
        """Freeze the values the trigger service needs."""
        return TriggerSettings(
            source_url=self.source_url,
            webhook_url=self.webhook_url,
            interval_seconds=self.get_interval_seconds(),
            request_timeout=self.request_timeout,
            item_noun=self.item_noun,
            user_agent=self.user_agent,
        )


def load_config(**overrides) -> TriggerConfig:
    """
    Load configuration from the environment and ``.env``.

    Raises:
        pydantic.ValidationError: If required values are missing or malformed
    """
    return TriggerConfig(**overrides)
