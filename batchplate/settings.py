from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.permissions import resolve_permission


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BATCHPLATE_", case_sensitive=False, env_ignore_empty=True
    )

    left_delim: str = "{{"
    right_delim: str = "}}"
    default_mode: int = 0o644
    http_timeout: float = 30.0

    @field_validator("default_mode", mode="before")
    @classmethod
    def parse_octal_mode(cls, value: Any) -> Any:
        # Environment values are octal text, the same format as --chmod.
        if isinstance(value, str):
            mode, _ = resolve_permission(value.strip())
            return mode
        return value
