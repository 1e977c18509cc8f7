"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. ``AppConfig.from_env`` layers ``PERCH_*``
environment overrides on top of the defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from perch.errors import ConfigurationError

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, version_var="APP_VERSION")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8787
    debug: bool = False
    workers: int = 1

    # Edge service
    greeting: str = "Hello from Workers!"
    version_var: str = "WORKERS_RS_VERSION"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
    websocket_max_message_size: int = 1024 * 1024  # 1 MB

    # Logging
    log_level: str = "info"
    log_format: str = "text"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = "PERCH_",
    ) -> AppConfig:
        """Build a config from ``PERCH_<FIELD>`` environment variables.

        Unset variables keep their defaults. Values are coerced to the
        field's type; a value that cannot be coerced raises
        ``ConfigurationError`` naming the variable::

            PERCH_PORT=9000 PERCH_DEBUG=true perch run
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for f in fields(cls):
            key = f"{prefix}{f.name.upper()}"
            if key not in source:
                continue
            overrides[f.name] = _coerce(key, source[key], type(getattr(_DEFAULTS, f.name)))
        return cls(**overrides)


def _coerce(key: str, raw: str, target: type) -> Any:
    if target is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        msg = f"{key}={raw!r} is not a boolean (use true/false)"
        raise ConfigurationError(msg)
    if target is int:
        try:
            return int(raw)
        except ValueError:
            msg = f"{key}={raw!r} is not an integer"
            raise ConfigurationError(msg) from None
    return raw


_DEFAULTS = AppConfig()
