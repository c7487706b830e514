"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from langstats.charts.models import ChartKind, Theme
from langstats.config.models import CacheBackend, CacheConfig, LangStatsConfig, TransportType
from langstats.config.settings import apply_overrides, load_config_from_file


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LANGSTATS_GITHUB__TOKEN", raising=False)

    config = LangStatsConfig.create()

    assert config.server.transport == TransportType.STDIO
    assert str(config.github.api_url).rstrip("/") == "https://api.github.com"
    assert config.github.batch_size == 10
    assert config.github.batch_delay_seconds == pytest.approx(0.1)
    assert config.cache.backend == CacheBackend.SQL
    assert config.cache.memory_ttl_seconds == 120
    assert config.cache.ttl_seconds == 24 * 60 * 60
    assert config.cache.language_ttl_seconds == 6 * 60 * 60
    assert config.cache.compression_threshold_bytes == 1024
    assert config.cache.max_payload_bytes == 16 * 1024 * 1024
    assert config.cache.connect_retries == 3
    assert config.chart.max_languages == 8


def test_yaml_file_is_loaded(tmp_path: Path) -> None:
    config_file = tmp_path / "langstats.yaml"
    config_file.write_text(
        """
server:
  transport: http
  port: 9000
github:
  token: "  abc  "
  batch_size: 5
cache:
  backend: memory
  url: null
  language_ttl_seconds: 60
chart:
  theme: light
  kind: bar
  max_languages: 20
""",
        encoding="utf-8",
    )

    config = LangStatsConfig.create(config_file)

    assert config.server.transport == TransportType.HTTP
    assert config.server.port == 9000
    assert config.github.token == "abc"
    assert config.github.batch_size == 5
    assert config.cache.backend == CacheBackend.MEMORY
    assert config.cache.language_ttl_seconds == 60
    assert config.chart.theme == Theme.LIGHT
    assert config.chart.kind == ChartKind.BAR
    assert config.chart.max_languages == 8


def test_overrides_win_over_file(tmp_path: Path) -> None:
    config_file = tmp_path / "langstats.yaml"
    config_file.write_text("server:\n  port: 9000\n", encoding="utf-8")

    config = LangStatsConfig.create(config_file, {"port": 9100, "host": None, "log_level": "DEBUG"})

    assert config.server.port == 9100
    assert config.server.host == "127.0.0.1"
    assert config.logging.level == "DEBUG"


def test_environment_variables_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LANGSTATS_GITHUB__TOKEN", "from-env")
    monkeypatch.setenv("LANGSTATS_CACHE__BACKEND", "memory")

    config = LangStatsConfig.create()

    assert config.github.token == "from-env"
    assert config.cache.backend == CacheBackend.MEMORY


def test_apply_overrides_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError):
        apply_overrides({}, {"colour": "blue"})


def test_apply_overrides_does_not_mutate_input() -> None:
    data = {"server": {"port": 1}}

    merged = apply_overrides(data, {"port": 2})

    assert data == {"server": {"port": 1}}
    assert merged == {"server": {"port": 2}}


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config_from_file(tmp_path / "missing.yaml")


def test_non_mapping_file_raises(tmp_path: Path) -> None:
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(yaml.YAMLError):
        load_config_from_file(config_file)


def test_sql_backend_requires_url() -> None:
    with pytest.raises(ValidationError):
        CacheConfig(backend=CacheBackend.SQL, url=None)


def test_invalid_port_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("server:\n  port: 70000\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        LangStatsConfig.create(config_file)
