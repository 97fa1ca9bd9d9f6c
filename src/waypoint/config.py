"""Router configuration.

RouterConfig is a frozen pydantic model, validated on creation::

    config = RouterConfig(base_path="/blog/", debug=True)
    config = RouterConfig.from_env()  # WAYPOINT_BASE_PATH, WAYPOINT_DEBUG, ...
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RouterConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # None means infer from the entry script's location on first dispatch
    base_path: str | None = None
    first_match_only: bool = True
    strict: bool = False
    debug: bool = False
    redirect_status: int = 301
    log_level: str = "INFO"

    @field_validator("base_path")
    @classmethod
    def _check_base_path(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("/"):
            msg = f"base_path must start with '/', got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("redirect_status")
    @classmethod
    def _check_redirect_status(cls, value: int) -> int:
        if not 300 <= value <= 399:
            msg = f"redirect_status must be a 3xx status code, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls, prefix: str = "WAYPOINT_", environ: Mapping[str, str] | None = None) -> RouterConfig:
        """Read settings from ``{prefix}{FIELD}`` environment variables.

        Unset variables keep their defaults; pydantic coerces the strings.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = f"{prefix}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        return cls.model_validate(values)
