"""Tests for configuration loading and origin rules."""

import tempfile
from pathlib import Path

import pytest

from pai.config import (
    DEFAULT_CONFIG_TEMPLATE, Config, CorsConfig, extract_domain, normalize_base_url,
)
from pai.errors import ConfigError
from pai.models import SourceKind


FULL_CONFIG = """
[database]
path = "/tmp/pai-test.db"

[sources.substack]
enabled = true
base_url = "https://me.substack.com/"

[sources.bluesky]
enabled = true
handle = "me.bsky.social"

[[sources.leaflet]]
enabled = true
id = "notes"
base_url = "https://notes.leaflet.pub"

[[sources.leaflet]]
id = "drafts"
base_url = "https://drafts.leaflet.pub"

[[sources.bearblog]]
enabled = true
id = "blog"
base_url = "https://me.bearblog.dev"

[cors]
allowed_origins = ["https://example.com"]
dev_key = "secret"
"""


class TestConfigLoading:

    def test_full_config(self):
        config = Config.from_str(FULL_CONFIG)

        assert config.database_path == "/tmp/pai-test.db"
        assert config.sources.substack.enabled
        assert config.sources.substack.source_id == "me.substack.com"
        assert config.sources.bluesky.handle == "me.bsky.social"
        assert [l.id for l in config.sources.leaflet] == ["notes", "drafts"]
        assert config.sources.leaflet[1].enabled is False
        assert config.sources.bearblog[0].base_url == "https://me.bearblog.dev"
        assert config.cors.allowed_origins == ["https://example.com"]
        assert config.cors.dev_key == "secret"

    def test_entries_order(self):
        config = Config.from_str(FULL_CONFIG)
        kinds = [kind for kind, _ in config.sources.entries()]
        assert kinds == [
            SourceKind.SUBSTACK, SourceKind.BLUESKY,
            SourceKind.LEAFLET, SourceKind.LEAFLET, SourceKind.BEARBLOG,
        ]

    def test_empty_config(self):
        config = Config.from_str("")
        assert config.sources.entries() == []
        assert config.cors.enabled is False

    def test_template_parses(self):
        config = Config.from_str(DEFAULT_CONFIG_TEMPLATE)
        assert all(not entry.enabled for _, entry in config.sources.entries())

    def test_missing_required_field(self):
        with pytest.raises(ConfigError, match="handle"):
            Config.from_str("[sources.bluesky]\nenabled = true\n")

    def test_missing_list_field(self):
        with pytest.raises(ConfigError, match="base_url"):
            Config.from_str('[[sources.bearblog]]\nid = "x"\n')

    def test_invalid_toml(self):
        with pytest.raises(ConfigError):
            Config.from_str("[sources\n")

    def test_load_missing_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config.load(Path(tmpdir) / "config.toml")
        assert config == Config()

    def test_from_file_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigError):
                Config.from_file(Path(tmpdir) / "config.toml")

    def test_database_path_resolution(self):
        config = Config.from_str(FULL_CONFIG)
        assert config.resolve_database_path() == Path("/tmp/pai-test.db")
        assert config.resolve_database_path("/data/other.db") == Path("/data/other.db")


def test_normalize_base_url():
    assert normalize_base_url("https://me.substack.com/") == "me.substack.com"
    assert normalize_base_url("http://me.substack.com") == "me.substack.com"


def test_extract_domain():
    assert extract_domain("https://Blog.Example.com:8443/path") == "blog.example.com"
    assert extract_domain("localhost:3000") == "localhost"


class TestCorsConfig:

    def test_empty_list_denies(self):
        assert not CorsConfig().is_origin_allowed("https://example.com")

    def test_exact_match(self):
        cors = CorsConfig(allowed_origins=["http://localhost:3000"])
        assert cors.is_origin_allowed("http://localhost:3000")
        assert not cors.is_origin_allowed("http://localhost:4000")

    def test_root_domain_match(self):
        cors = CorsConfig(allowed_origins=["https://example.com"])
        assert cors.is_origin_allowed("https://blog.example.com")
        assert cors.is_origin_allowed("http://example.com:8080")
        assert not cors.is_origin_allowed("https://example.org")
        assert not cors.is_origin_allowed("https://notexample.com")

    def test_dev_key(self):
        cors = CorsConfig(dev_key="secret")
        assert cors.is_dev_key_valid("secret")
        assert not cors.is_dev_key_valid("wrong")
        assert not cors.is_dev_key_valid(None)
        assert not CorsConfig().is_dev_key_valid("secret")
