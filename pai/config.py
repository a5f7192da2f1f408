"""Configuration management for PAI."""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pai.errors import ConfigError, PaiIOError
from pai.models import SourceKind
from pai.store import Store, StoreType, create_store


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"
DATABASE_FILENAME = "pai.db"

DEFAULT_CONFIG_TEMPLATE = """\
# Personal Activity Index configuration

[database]
# path = "~/.local/share/pai/pai.db"

[deployment]
mode = "sqlite"

[sources.substack]
enabled = false
base_url = "https://yourname.substack.com"

[sources.bluesky]
enabled = false
handle = "yourname.bsky.social"

[[sources.leaflet]]
enabled = false
id = "my-leaflet"
base_url = "https://yourname.leaflet.pub"

[[sources.bearblog]]
enabled = false
id = "my-blog"
base_url = "https://yourname.bearblog.dev"

[cors]
allowed_origins = []
# dev_key = "change-me"
"""


def default_config_dir() -> Path:
    """Directory holding config.toml, honouring XDG_CONFIG_HOME."""
    base = os.environ.get("XDG_CONFIG_HOME") or "~/.config"
    return Path(base).expanduser() / "pai"


def default_data_dir() -> Path:
    """Directory holding the database, honouring XDG_DATA_HOME."""
    base = os.environ.get("XDG_DATA_HOME") or "~/.local/share"
    return Path(base).expanduser() / "pai"


def normalize_base_url(base_url: str) -> str:
    """Strip the scheme and trailing slash, e.g. for a substack source id."""
    url = base_url.strip()
    for scheme in ("https://", "http://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return url.rstrip("/")


# =============================================================================
# Source sections
# =============================================================================


@dataclass
class SubstackConfig:
    base_url: str
    enabled: bool = False

    @property
    def source_id(self) -> str:
        return normalize_base_url(self.base_url)


@dataclass
class BlueskyConfig:
    handle: str
    enabled: bool = False

    @property
    def source_id(self) -> str:
        return self.handle


@dataclass
class LeafletConfig:
    id: str
    base_url: str
    enabled: bool = False

    @property
    def source_id(self) -> str:
        return self.id


@dataclass
class BearBlogConfig:
    id: str
    base_url: str
    enabled: bool = False

    @property
    def source_id(self) -> str:
        return self.id


SourceEntry = SubstackConfig | BlueskyConfig | LeafletConfig | BearBlogConfig


@dataclass
class SourcesConfig:
    """Configured source instances.

    Substack and Bluesky are single accounts; Leaflet and Bear Blog allow
    several named publications and keep the order they were declared in.
    """
    substack: SubstackConfig | None = None
    bluesky: BlueskyConfig | None = None
    leaflet: list[LeafletConfig] = field(default_factory=list)
    bearblog: list[BearBlogConfig] = field(default_factory=list)

    def entries(self) -> list[tuple[SourceKind, SourceEntry]]:
        """All configured instances in sync order, enabled or not."""
        result: list[tuple[SourceKind, SourceEntry]] = []
        if self.substack is not None:
            result.append((SourceKind.SUBSTACK, self.substack))
        if self.bluesky is not None:
            result.append((SourceKind.BLUESKY, self.bluesky))
        result.extend((SourceKind.LEAFLET, entry) for entry in self.leaflet)
        result.extend((SourceKind.BEARBLOG, entry) for entry in self.bearblog)
        return result


# =============================================================================
# CORS
# =============================================================================


def extract_domain(origin: str) -> str:
    """Host part of an origin, without scheme, port or path."""
    value = origin.strip()
    if "://" not in value:
        value = f"//{value}"
    return (urlsplit(value).hostname or "").lower()


def root_domain(host: str) -> str | None:
    """Last two labels of a host name, or None for single-label hosts."""
    labels = [label for label in host.split(".") if label]
    if len(labels) < 2:
        return None
    return ".".join(labels[-2:])


@dataclass
class CorsConfig:
    """Origin gating for the HTTP server."""
    allowed_origins: list[str] = field(default_factory=list)
    dev_key: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.allowed_origins) or self.dev_key is not None

    def is_origin_allowed(self, origin: str) -> bool:
        """Exact match, or same root domain as an allowed origin."""
        if not self.allowed_origins:
            return False
        if origin in self.allowed_origins:
            return True

        origin_root = root_domain(extract_domain(origin))
        if origin_root is None:
            return False
        return any(
            root_domain(extract_domain(allowed)) == origin_root
            for allowed in self.allowed_origins
        )

    def is_dev_key_valid(self, key: str | None) -> bool:
        return self.dev_key is not None and key is not None and key == self.dev_key


# =============================================================================
# Top-level config
# =============================================================================


@dataclass
class Config:
    """Application configuration."""

    database_path: str | None = None
    deployment_mode: str = "sqlite"
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)

    @classmethod
    def from_str(cls, text: str) -> "Config":
        """Parse config from TOML text."""
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load config from a TOML file."""
        try:
            text = Path(path).expanduser().read_text()
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}") from None
        except OSError as e:
            raise PaiIOError(f"Failed to read {path}: {e}") from e
        return cls.from_str(text)

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load config from a file, or return defaults if it does not exist."""
        if not Path(path).expanduser().exists():
            logger.warning("Config file %s not found, using defaults", path)
            return cls()
        return cls.from_file(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        database = _section(data, "database")
        deployment = _section(data, "deployment")
        sources = _section(data, "sources")
        cors = _section(data, "cors")

        substack = _section(sources, "substack", "sources.substack")
        bluesky = _section(sources, "bluesky", "sources.bluesky")

        return cls(
            database_path=_optional_str(database, "path", "database"),
            deployment_mode=_optional_str(deployment, "mode", "deployment") or "sqlite",
            sources=SourcesConfig(
                substack=SubstackConfig(
                    base_url=_required_str(substack, "base_url", "sources.substack"),
                    enabled=_enabled(substack, "sources.substack"),
                ) if "substack" in sources else None,
                bluesky=BlueskyConfig(
                    handle=_required_str(bluesky, "handle", "sources.bluesky"),
                    enabled=_enabled(bluesky, "sources.bluesky"),
                ) if "bluesky" in sources else None,
                leaflet=[
                    LeafletConfig(
                        id=_required_str(entry, "id", "sources.leaflet"),
                        base_url=_required_str(entry, "base_url", "sources.leaflet"),
                        enabled=_enabled(entry, "sources.leaflet"),
                    )
                    for entry in _table_list(sources, "leaflet")
                ],
                bearblog=[
                    BearBlogConfig(
                        id=_required_str(entry, "id", "sources.bearblog"),
                        base_url=_required_str(entry, "base_url", "sources.bearblog"),
                        enabled=_enabled(entry, "sources.bearblog"),
                    )
                    for entry in _table_list(sources, "bearblog")
                ],
            ),
            cors=CorsConfig(
                allowed_origins=_str_list(cors, "allowed_origins", "cors"),
                dev_key=_optional_str(cors, "dev_key", "cors"),
            ),
        )

    def resolve_database_path(self, override: str | None = None) -> Path:
        """Database location: explicit override, then config, then XDG default."""
        if override:
            return Path(override).expanduser()
        if self.database_path:
            return Path(self.database_path).expanduser()
        return default_data_dir() / DATABASE_FILENAME

    def create_store(self, db_path: str | None = None) -> Store:
        """Create a store instance from this config."""
        store_type = StoreType.parse(self.deployment_mode)
        return create_store(store_type, str(self.resolve_database_path(db_path)))


# =============================================================================
# TOML helpers
# =============================================================================


def _section(data: dict[str, Any], key: str, name: str | None = None) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name or key}] must be a table")
    return value


def _table_list(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ConfigError(f"sources.{key} must be an array of tables ([[sources.{key}]])")
    return value


def _required_str(data: dict[str, Any], key: str, section: str) -> str:
    value = data.get(key)
    if value is None:
        raise ConfigError(f"Missing required field '{key}' in [{section}]")
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Field '{key}' in [{section}] must be a non-empty string")
    return value.strip()


def _optional_str(data: dict[str, Any], key: str, section: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"Field '{key}' in [{section}] must be a string")
    return value


def _enabled(data: dict[str, Any], section: str) -> bool:
    value = data.get("enabled", False)
    if not isinstance(value, bool):
        raise ConfigError(f"Field 'enabled' in [{section}] must be true or false")
    return value


def _str_list(data: dict[str, Any], key: str, section: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"Field '{key}' in [{section}] must be a list of strings")
    return list(value)
