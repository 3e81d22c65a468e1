import json
import logging
import math
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_VALID_LOG_FORMATS = {"text", "structured", "json"}


def _normalize_paths(items: list[Any]) -> list[str]:
    paths: list[str] = []
    for item in items:
        part = str(item).strip().strip("\"'")
        if not part:
            continue
        if not part.startswith("/"):
            part = f"/{part}"
        if part not in paths:
            paths.append(part)
    return paths


def _parse_path_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return _normalize_paths(list(raw))

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []

    # Prefer JSON, but tolerate comma or whitespace separated values.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return _normalize_paths(parsed)

    return _normalize_paths(re.split(r"[,\s]+", raw.strip("[]")))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Leaky bucket settings
    rate_limit_enabled: bool = True
    rate_limit_capacity: float = 10.0  # Maximum fill level per identity
    rate_limit_leak_rate: float = 1.0  # Units drained per second
    rate_limit_max_key_length: int = 512  # Longest accepted Bearer key

    # Paths that bypass admission (health probes etc.)
    rate_limit_exempt_paths: Annotated[list[str], NoDecode] = ["/health"]

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("rate_limit_exempt_paths", mode="before")
    @classmethod
    def decode_exempt_paths(cls, v: Any) -> list[str]:
        return _parse_path_list(v)

    @field_validator("rate_limit_capacity", "rate_limit_leak_rate")
    @classmethod
    def validate_rate_limit_positive(cls, v: float) -> float:
        """Validate bucket parameters are positive and finite."""
        if math.isnan(v) or v <= 0:
            raise ValueError("Rate limit capacity and leak rate must be positive")
        if math.isinf(v):
            raise ValueError("Rate limit capacity and leak rate must be finite")
        return v

    @field_validator("rate_limit_max_key_length")
    @classmethod
    def validate_max_key_length(cls, v: int) -> int:
        """Validate key length limit is positive."""
        if v < 1:
            raise ValueError("rate_limit_max_key_length must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level against stdlib level names."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is one of text, structured or json."""
        fmt = v.strip().lower()
        if fmt not in _VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {', '.join(sorted(_VALID_LOG_FORMATS))}"
            )
        return fmt

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
