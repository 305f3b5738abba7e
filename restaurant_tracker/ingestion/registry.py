"""
Source Registry Module
======================

Manages upstream source configurations loaded from YAML files. A source
declares where the licensing data lives, which payload shape it returns,
how it is paged, and how its columns map onto restaurant fields.

The upstream layout changes often, so column positions and tag names are
configuration rather than code.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from restaurant_tracker.core.enums import SourceFormat
from restaurant_tracker.core.errors import ConfigError
from restaurant_tracker.core.schema import DEFAULT_LICENCE_TYPE

# Key type for a field candidate: column index for row shapes, key/tag for mapping shapes
FieldKey = int | str

MAPPED_FIELDS = (
    "name",
    "district",
    "address",
    "licence_no",
    "licence_type",
    "valid_til",
    "licence_with_expiry",
)


def _as_candidates(value: Any) -> list[FieldKey]:
    """Coerce a YAML mapping value into an ordered candidate list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass
class FieldMapping:
    """
    Maps canonical restaurant fields to candidate keys in a raw entry.

    Each field lists its candidates in priority order; the first one with a
    non-blank value wins.
    """

    name: list[FieldKey] = field(default_factory=list)
    district: list[FieldKey] = field(default_factory=list)
    address: list[FieldKey] = field(default_factory=list)
    licence_no: list[FieldKey] = field(default_factory=list)
    licence_type: list[FieldKey] = field(default_factory=list)
    valid_til: list[FieldKey] = field(default_factory=list)
    # "LICENCE (EXPIRY)" combined strings
    licence_with_expiry: list[FieldKey] = field(default_factory=list)
    licence_required: bool = True
    default_licence_type: str = DEFAULT_LICENCE_TYPE

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FieldMapping:
        """Create from dictionary."""
        if not data:
            raise ConfigError("Source is missing a 'fields' mapping")

        unknown = set(data) - set(MAPPED_FIELDS) - {"licence_required", "default_licence_type"}
        if unknown:
            raise ConfigError(f"Unknown field mapping keys: {', '.join(sorted(unknown))}")

        mapping = cls(
            licence_required=bool(data.get("licence_required", True)),
            default_licence_type=data.get("default_licence_type", DEFAULT_LICENCE_TYPE),
        )
        for name in MAPPED_FIELDS:
            setattr(mapping, name, _as_candidates(data.get(name)))

        if not mapping.name:
            raise ConfigError("Field mapping must declare at least one 'name' candidate")
        return mapping


@dataclass
class SourceConfig:
    """Configuration for a single upstream source."""

    name: str
    format: SourceFormat
    url: str
    fields: FieldMapping
    enabled: bool = True
    description: str = ""
    mirror_urls: list[str] = field(default_factory=list)
    # Source tried, with its own adapter and mapping, when this one yields nothing
    fallback_source: str | None = None
    paged: bool = False
    page_param: str = "page"
    page_size: int = 50
    total_records_estimate: int | None = None
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    adapter_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceConfig:
        """Create from dictionary."""
        try:
            name = data["name"]
            source_format = SourceFormat(data["format"])
            url = data["url"]
        except KeyError as e:
            raise ConfigError(f"Source definition missing required key: {e}") from e
        except ValueError as e:
            raise ConfigError(f"Source '{data.get('name')}': {e}") from e

        page_size = int(data.get("page_size", 50))
        if page_size <= 0:
            raise ConfigError(f"Source '{name}': page_size must be positive")

        total = data.get("total_records_estimate")

        return cls(
            name=name,
            format=source_format,
            url=url,
            fields=FieldMapping.from_dict(data.get("fields")),
            enabled=data.get("enabled", True),
            description=data.get("description", ""),
            mirror_urls=list(data.get("mirror_urls", [])),
            fallback_source=data.get("fallback_source"),
            paged=bool(data.get("paged", False)),
            page_param=data.get("page_param", "page"),
            page_size=page_size,
            total_records_estimate=int(total) if total is not None else None,
            params=dict(data.get("params", {})),
            headers={str(k): str(v) for k, v in data.get("headers", {}).items()},
            adapter_options=dict(data.get("adapter_options", {})),
        )

    @property
    def max_pages(self) -> int | None:
        """Page budget derived from the known total-record estimate."""
        if not self.paged or not self.total_records_estimate:
            return None
        return math.ceil(self.total_records_estimate / self.page_size)

    @property
    def urls(self) -> list[str]:
        """Primary URL followed by mirrors, in fallback order."""
        return [self.url, *self.mirror_urls]


@dataclass
class GlobalConfig:
    """Global crawl settings."""

    user_agent: str = "Mozilla/5.0 (compatible; RestaurantTracker/0.1)"
    request_timeout: float = 60.0
    request_delay_seconds: float = 1.0
    preview_limit: int = 1000
    recent_window_days: int = 30
    max_consecutive_page_failures: int = 3
    default_source: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        defaults = cls()
        return cls(
            user_agent=data.get("user_agent", defaults.user_agent),
            request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
            request_delay_seconds=float(
                data.get("request_delay_seconds", defaults.request_delay_seconds)
            ),
            preview_limit=int(data.get("preview_limit", defaults.preview_limit)),
            recent_window_days=int(data.get("recent_window_days", defaults.recent_window_days)),
            max_consecutive_page_failures=int(
                data.get("max_consecutive_page_failures", defaults.max_consecutive_page_failures)
            ),
            default_source=data.get("default_source"),
        )


class SourceRegistry:
    """
    Registry for managing upstream source configurations.

    Loads source definitions from a YAML file and provides methods
    to query them.
    """

    def __init__(self) -> None:
        self._sources: dict[str, SourceConfig] = {}
        self._global_config: GlobalConfig = GlobalConfig()
        self._config_path: Path | None = None

    @property
    def global_config(self) -> GlobalConfig:
        """Get global configuration."""
        return self._global_config

    @property
    def config_path(self) -> Path | None:
        """Path the configuration was loaded from, if any."""
        return self._config_path

    def load_config(self, config_path: Path | str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the sources.yaml file
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        self.load_dict(data)
        self._config_path = config_path

    def load_dict(self, data: dict[str, Any]) -> None:
        """Load configuration from an already-parsed mapping."""
        self._global_config = GlobalConfig.from_dict(data.get("global"))

        self._sources.clear()
        for source_data in data.get("sources", []):
            source = SourceConfig.from_dict(source_data)
            self._sources[source.name] = source

        for source in self._sources.values():
            if source.fallback_source and source.fallback_source not in self._sources:
                raise ConfigError(
                    f"Source '{source.name}': fallback source '{source.fallback_source}' not found"
                )

    def get_source(self, name: str) -> SourceConfig | None:
        """
        Get a source configuration by name.

        Args:
            name: Source name

        Returns:
            SourceConfig if found, None otherwise
        """
        return self._sources.get(name)

    def get_active_source(self, name: str | None = None) -> SourceConfig:
        """
        Select the source for a crawl run.

        Uses the explicit name, then CRAWL_SOURCE, then the configured
        default, then the first enabled source.

        Raises:
            ConfigError: If no usable source is configured.
        """
        name = name or os.environ.get("CRAWL_SOURCE") or self._global_config.default_source
        if name:
            source = self._sources.get(name)
            if source is None:
                raise ConfigError(f"Source '{name}' not found")
            if not source.enabled:
                raise ConfigError(f"Source '{name}' is disabled")
            return source

        enabled = self.list_enabled_sources()
        if not enabled:
            raise ConfigError("No enabled sources configured")
        return enabled[0]

    def fallback_chain(self, source: SourceConfig) -> list[SourceConfig]:
        """
        The source followed by its fallbacks, in the order they are tried.

        Disabled fallbacks are skipped and each source appears at most once.
        """
        chain = [source]
        seen = {source.name}
        name = source.fallback_source
        while name and name not in seen:
            seen.add(name)
            fallback = self._sources.get(name)
            if fallback is None:
                break
            if fallback.enabled:
                chain.append(fallback)
            name = fallback.fallback_source
        return chain

    def list_sources(self) -> list[SourceConfig]:
        """
        Get all registered sources.

        Returns:
            List of all source configurations
        """
        return list(self._sources.values())

    def list_enabled_sources(self) -> list[SourceConfig]:
        """
        Get all enabled sources.

        Returns:
            List of enabled source configurations
        """
        return [s for s in self._sources.values() if s.enabled]


# Global registry instance
_default_registry: SourceRegistry | None = None


def get_default_registry() -> SourceRegistry:
    """
    Get the default source registry instance.

    Loads configuration from the path specified in SOURCES_CONFIG_PATH
    environment variable, or falls back to config/sources.yaml.

    Returns:
        The global SourceRegistry instance
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = SourceRegistry()

        config_path = os.environ.get("SOURCES_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            # Default to config/sources.yaml relative to project root
            module_dir = Path(__file__).parent
            project_root = module_dir.parent.parent
            path = project_root / "config" / "sources.yaml"

        if path.exists():
            _default_registry.load_config(path)

    return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None
