"""CLI entry point for LangStats."""

import asyncio
import json
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from .charts.models import ChartKind, Theme
from .config.models import LangStatsConfig
from .service.models import LanguageStatsOptions
from .utils.errors import LangStatsError, error_payload
from .utils.logging import setup_logging

app = typer.Typer(
    name="langstats",
    help="GitHub language statistics with cached SVG charts",
    add_completion=False,
)

def _config_option() -> typer.models.OptionInfo:
    return typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )


def _load_config(config: Path | None, overrides: dict[str, object] | None = None) -> LangStatsConfig:
    """Load configuration and set up logging, exiting on invalid settings."""
    try:
        config_obj = LangStatsConfig.create(config, overrides)
    except ValidationError as e:
        typer.echo("✗ Configuration validation failed:", err=True)
        for error in e.errors():
            location = " -> ".join(str(loc) for loc in error["loc"])
            typer.echo(f"  {location}: {error['msg']}", err=True)
        raise typer.Exit(1)
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)

    setup_logging(config_obj.logging)
    return config_obj


@app.command()
def serve(
    config: Path | None = _config_option(),
    host: str | None = typer.Option(
        None,
        "--host",
        "-h",
        help="Server host (overrides config)",
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        "-p",
        help="Server port (overrides config)",
    ),
    transport: str | None = typer.Option(
        None,
        "--transport",
        "-t",
        help="Transport type: stdio, http, sse (overrides config)",
    ),
) -> None:
    """Start the LangStats MCP server."""
    config_obj = _load_config(
        config, {"host": host, "port": port, "transport": transport}
    )

    typer.echo(f"Starting LangStats server: {config_obj.server.name}", err=True)
    typer.echo(f"Transport: {config_obj.server.transport.value}", err=True)
    if config_obj.server.transport.value != "stdio":
        typer.echo(
            f"Address: {config_obj.server.host}:{config_obj.server.port}", err=True
        )
    typer.echo(f"Cache backend: {config_obj.cache.backend.value}", err=True)

    from .server.factory import create_mcp_server

    async def run_server() -> None:
        server = create_mcp_server(config_obj)

        try:
            server_runner = await server.get_server_runner()
            typer.echo("✓ LangStats server started successfully", err=True)
            await server_runner()
        finally:
            await server.cleanup()

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        typer.echo("\nShutting down server...", err=True)
    except Exception as e:
        typer.echo(f"✗ Server failed: {e}", err=True)
        raise typer.Exit(1) from e


def _run_stats(config_obj: LangStatsConfig, username: str, options: LanguageStatsOptions):
    from .service.factory import service_context

    async def fetch():  # type: ignore[no-untyped-def]
        async with service_context(config_obj) as service:
            return await service.get_language_stats(username, options)

    try:
        return asyncio.run(fetch())
    except LangStatsError as e:
        typer.echo(json.dumps(error_payload(e), indent=2), err=True)
        raise typer.Exit(2 if e.code == "not_found" else 1)


@app.command()
def render(
    username: str = typer.Argument(..., help="GitHub login"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write SVG to file instead of stdout"
    ),
    theme: Theme | None = typer.Option(None, "--theme", help="Chart theme"),
    kind: ChartKind | None = typer.Option(None, "--kind", "-k", help="Chart kind"),
    size: int | None = typer.Option(None, "--size", "-s", help="Chart size (400-600)"),
    max_languages: int | None = typer.Option(
        None, "--max-languages", "-n", help="Languages to show (at most 8)"
    ),
    min_percentage: float | None = typer.Option(
        None, "--min-percentage", help="Hide languages below this share"
    ),
    hide_border: bool = typer.Option(False, "--hide-border"),
    hide_title: bool = typer.Option(False, "--hide-title"),
    title: str = typer.Option("", "--title", help="Custom chart title"),
    show_percentages: bool = typer.Option(False, "--show-percentages"),
    no_timing: bool = typer.Option(
        False, "--no-timing", help="Omit the processing time badge"
    ),
    config: Path | None = _config_option(),
) -> None:
    """Render a user's language chart as SVG."""
    config_obj = _load_config(config)
    defaults = config_obj.chart

    options = LanguageStatsOptions(
        theme=theme or defaults.theme,
        chart_kind=kind or defaults.kind,
        size=size or defaults.size,
        max_languages=max_languages or defaults.max_languages,
        min_percentage=defaults.min_percentage if min_percentage is None else min_percentage,
        hide_border=hide_border,
        hide_title=hide_title,
        custom_title=title,
        show_percentages=show_percentages,
        show_processing_time=not no_timing,
        auth_token=config_obj.github.token,
    )
    result = _run_stats(config_obj, username, options)

    if result.document is None:
        typer.echo("✗ Chart rendering produced no document", err=True)
        raise typer.Exit(1)

    if output:
        output.write_text(result.document, encoding="utf-8")
        typer.echo(
            f"✓ Wrote {len(result.languages)} languages to {output} "
            f"({result.cache_source.value})",
            err=True,
        )
    else:
        typer.echo(result.document)


@app.command()
def stats(
    username: str = typer.Argument(..., help="GitHub login"),
    max_languages: int | None = typer.Option(
        None, "--max-languages", "-n", help="Languages to return (at most 8)"
    ),
    min_percentage: float | None = typer.Option(
        None, "--min-percentage", help="Drop languages below this share"
    ),
    config: Path | None = _config_option(),
) -> None:
    """Print a user's language statistics as JSON."""
    config_obj = _load_config(config)
    defaults = config_obj.chart

    options = LanguageStatsOptions(
        max_languages=max_languages or defaults.max_languages,
        min_percentage=defaults.min_percentage if min_percentage is None else min_percentage,
        theme=defaults.theme,
        raw=True,
        auth_token=config_obj.github.token,
    )
    result = _run_stats(config_obj, username, options)

    typer.echo(
        json.dumps(result.model_dump(mode="json", exclude={"document"}), indent=2)
    )


@app.command("cache-stats")
def cache_stats_command(config: Path | None = _config_option()) -> None:
    """Show cache statistics."""
    config_obj = _load_config(config)

    from .cache.factory import create_cache_tier

    async def show_stats() -> None:
        cache = create_cache_tier(config_obj.cache)
        async with cache:
            stats = await cache.stats()

        typer.echo("Cache statistics:")
        typer.echo(f"Backend: {stats.backend}{' (degraded)' if stats.degraded else ''}")
        typer.echo(f"Items: {stats.item_count}")
        typer.echo(f"Memory items: {stats.memory_item_count}")
        typer.echo(
            f"Hit rate: {stats.hit_rate:.2%} "
            f"({stats.hit_count}/{stats.hit_count + stats.miss_count})"
        )
        if stats.storage_usage_bytes:
            mb = stats.storage_usage_bytes / 1024 / 1024
            typer.echo(f"Storage usage: {mb:.2f} MB")
        if stats.average_compression_ratio:
            typer.echo(f"Average compression ratio: {stats.average_compression_ratio:.2f}")
            typer.echo(f"Compression savings: {stats.compression_savings:.1f}%")
        typer.echo(f"Total accesses: {stats.total_access_count}")

    asyncio.run(show_stats())


@app.command("cache-invalidate")
def cache_invalidate_command(
    username: str | None = typer.Option(
        None, "--username", "-u", help="Drop entries for one user"
    ),
    tag: str | None = typer.Option(None, "--tag", help="Drop entries with this tag"),
    pattern: str | None = typer.Option(
        None, "--pattern", help="Drop entries whose key matches this regex"
    ),
    config: Path | None = _config_option(),
) -> None:
    """Invalidate cached entries by user, tag or key pattern."""
    selected = [value for value in (username, tag, pattern) if value]
    if len(selected) != 1:
        typer.echo("Pass exactly one of --username, --tag or --pattern", err=True)
        raise typer.Exit(1)

    config_obj = _load_config(config)

    from .cache.factory import create_cache_tier
    from .service.orchestrator import subject_tag

    async def invalidate() -> int:
        cache = create_cache_tier(config_obj.cache)
        async with cache:
            if username:
                return await cache.invalidate_tag(subject_tag(username))
            if tag:
                return await cache.invalidate_tag(tag)
            return await cache.invalidate(pattern or "")

    try:
        removed = asyncio.run(invalidate())
    except LangStatsError as e:
        typer.echo(json.dumps(error_payload(e), indent=2), err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ Removed {removed} cache entries")


@app.command("validate-config")
def validate_config_command(
    config: Path = typer.Argument(
        ...,
        help="Path to configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Validate configuration file."""
    config_obj = _load_config(config)

    typer.echo("✓ Configuration is valid")
    typer.echo(
        f"  Server: {config_obj.server.host}:{config_obj.server.port} "
        f"({config_obj.server.transport.value})"
    )
    typer.echo(f"  GitHub: {config_obj.github.api_url}")
    typer.echo(f"  Token: {'set' if config_obj.github.token else 'not set'}")
    typer.echo(
        f"  Cache: {config_obj.cache.backend.value} "
        f"(TTL: {config_obj.cache.language_ttl_seconds:g}s)"
    )
    typer.echo(
        f"  Chart: {config_obj.chart.kind.value}, {config_obj.chart.theme.value}, "
        f"{config_obj.chart.size}px"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    typer.echo(f"LangStats version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
