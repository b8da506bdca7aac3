"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SectionConfig:
    """One independently watched discovery section."""

    name: str = "default"
    namespaces: list[str] = field(default_factory=list)  # empty = all namespaces
    label_selector: str = ""
    field_selector: str = ""


@dataclass
class WatchConfig:
    """Watch-loop tuning shared by every section."""

    channel_capacity: int = 1000
    timeout_seconds: int = 300


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeSDConfig:
    """Top-level kubesd configuration."""

    sections: list[SectionConfig] = field(default_factory=lambda: [SectionConfig()])
    watch: WatchConfig = field(default_factory=WatchConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
