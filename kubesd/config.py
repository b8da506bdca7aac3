"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from kubesd.models.config import (
    APIConfig,
    KubeSDConfig,
    LogConfig,
    SectionConfig,
    WatchConfig,
)

_SECTION_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBESD_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: str = "") -> list[str]:
    return [item.strip() for item in _env(key, default).split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_section_names(names: list[str]) -> list[str]:
    if not names:
        raise ValueError("At least one discovery section must be configured")
    seen: set[str] = set()
    for name in names:
        if not _SECTION_NAME.match(name):
            raise ValueError(f"Invalid section name: {name!r}")
        if name in seen:
            raise ValueError(f"Duplicate section name: {name!r}")
        seen.add(name)
    return names


def _section_env_prefix(name: str) -> str:
    return "SECTION_" + name.upper().replace("-", "_")


def _load_section(name: str) -> SectionConfig:
    prefix = _section_env_prefix(name)
    return SectionConfig(
        name=name,
        namespaces=_env_list(f"{prefix}_NAMESPACES"),
        label_selector=_env(f"{prefix}_LABEL_SELECTOR", ""),
        field_selector=_env(f"{prefix}_FIELD_SELECTOR", ""),
    )


def load_config() -> KubeSDConfig:
    """Load configuration from KUBESD_* environment variables."""
    names = _validate_section_names(_env_list("SECTIONS", "default"))
    return KubeSDConfig(
        sections=[_load_section(name) for name in names],
        watch=WatchConfig(
            channel_capacity=_env_int("CHANNEL_CAPACITY", 1000, min_val=1, max_val=100_000),
            timeout_seconds=_env_int("WATCH_TIMEOUT", 300, min_val=30, max_val=3600),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
