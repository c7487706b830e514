"""CLI command tests."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from langstats import __version__
from langstats.__main__ import app
from langstats.cache.manager import CacheTier
from langstats.cache.models import CacheStats

runner = CliRunner()


def _memory_config(tmp_path: Path) -> Path:
    config_file = tmp_path / "langstats.yaml"
    config_file.write_text(
        "cache:\n  backend: memory\n  url: null\nlogging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    return config_file


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_validate_config_reports_settings(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate-config", str(_memory_config(tmp_path))])

    assert result.exit_code == 0
    assert "Configuration is valid" in result.output
    assert "Cache: memory" in result.output


def test_validate_config_rejects_invalid_file(tmp_path: Path) -> None:
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("server:\n  port: 0\n", encoding="utf-8")

    result = runner.invoke(app, ["validate-config", str(config_file)])

    assert result.exit_code == 1


def test_cache_stats_on_memory_backend(tmp_path: Path) -> None:
    result = runner.invoke(app, ["cache-stats", "--config", str(_memory_config(tmp_path))])

    assert result.exit_code == 0
    assert "Backend: memory" in result.output
    assert "Items: 0" in result.output


def test_cache_invalidate_requires_exactly_one_selector(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["cache-invalidate", "--tag", "a", "--pattern", "b", "--config", str(_memory_config(tmp_path))],
    )

    assert result.exit_code == 1


def test_cache_invalidate_by_username(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["cache-invalidate", "--username", "octo", "--config", str(_memory_config(tmp_path))]
    )

    assert result.exit_code == 0
    assert "Removed 0 cache entries" in result.output


def test_cache_invalidate_rejects_invalid_pattern(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["cache-invalidate", "--pattern", "lang_stats:[", "--config", str(_memory_config(tmp_path))],
    )

    assert result.exit_code == 1
    assert '"code": "invalid_pattern"' in result.output
    assert "Removed" not in result.output


def test_cache_stats_reports_compression_savings_as_percentage(tmp_path: Path, monkeypatch) -> None:
    async def fake_stats(self: CacheTier) -> CacheStats:
        return CacheStats(backend="memory", item_count=2, average_compression_ratio=0.3)

    monkeypatch.setattr(CacheTier, "stats", fake_stats)

    result = runner.invoke(app, ["cache-stats", "--config", str(_memory_config(tmp_path))])

    assert result.exit_code == 0
    assert "Compression savings: 70.0%" in result.output
