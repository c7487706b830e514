"""FastMCP server implementation."""

from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from ..charts.models import ChartKind, Theme
from ..config.models import LangStatsConfig
from ..service.factory import ServiceComponents
from ..service.models import LanguageStatsOptions
from ..utils.errors import LangStatsError, error_payload
from ..utils.logging import get_logger

logger = get_logger("mcp.server")


@dataclass(slots=True)
class LangStatsServer:
    """MCP server exposing language statistics tools."""

    config: LangStatsConfig
    components: ServiceComponents
    _server: FastMCP | None = None

    def __post_init__(self) -> None:
        """Initialize FastMCP server."""
        self._server = FastMCP(self.config.server.name)
        self._register_tools()
        logger.info("MCP server initialized", name=self.config.server.name)

    async def get_server_runner(self) -> Callable[[], Awaitable[None]]:
        """Get server runner coroutine for the configured transport.

        Returns:
            Async callable that runs the server with configured transport
        """
        if not self._server:
            raise RuntimeError("Server not initialized")

        await self.components.start()

        match self.config.server.transport:
            case "stdio":
                logger.info("Server ready for STDIO transport")
                return self._run_stdio
            case "http":
                logger.info(
                    "Server ready for HTTP transport",
                    host=self.config.server.host,
                    port=self.config.server.port,
                )
                return partial(self._run_http, self.config.server.host, self.config.server.port)
            case "sse":
                logger.info(
                    "Server ready for SSE transport",
                    host=self.config.server.host,
                    port=self.config.server.port,
                )
                return partial(self._run_sse, self.config.server.host, self.config.server.port)
            case _:
                raise ValueError(
                    f"Unsupported transport: {self.config.server.transport}"
                )

    async def cleanup(self) -> None:
        """Clean up server resources."""
        logger.info("Cleaning up MCP server resources")
        await self.components.close()
        logger.info("MCP server cleanup completed")

    async def __aenter__(self) -> Callable[[], Awaitable[None]]:
        """Async context manager entry - returns server runner."""
        return await self.get_server_runner()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Async context manager exit."""
        await self.cleanup()

    async def _run_stdio(self) -> None:
        """Run server with STDIO transport."""
        if not self._server:
            raise RuntimeError("Server not initialized")
        await self._server.run_stdio_async()

    async def _run_http(self, host: str, port: int) -> None:
        """Run server with HTTP transport."""
        if not self._server:
            raise RuntimeError("Server not initialized")
        await self._server.run_http_async(host=host, port=port)

    async def _run_sse(self, host: str, port: int) -> None:
        """Run server with SSE transport."""
        if not self._server:
            raise RuntimeError("Server not initialized")
        await self._server.run_sse_async(host=host, port=port)

    @property
    def server(self) -> FastMCP:
        """Get the FastMCP server instance."""
        if not self._server:
            raise RuntimeError("Server not initialized")
        return self._server

    def _register_tools(self) -> None:
        """Register language statistics tools."""
        if not self._server:
            raise RuntimeError("Server not initialized")

        service = self.components.service
        defaults = self.config.chart

        @self._server.tool(
            name="language-chart",
            description="Render a GitHub user's language usage as an SVG chart",
        )
        async def language_chart(
            username: str,
            theme: Theme = defaults.theme,
            size: int = defaults.size,
            chart_kind: ChartKind = defaults.kind,
            max_languages: int = defaults.max_languages,
            min_percentage: float = defaults.min_percentage,
            hide_border: bool = False,
            hide_title: bool = False,
            custom_title: str = "",
            show_percentages: bool = False,
        ) -> str:
            """Render a language chart.

            Args:
                username: GitHub login
                theme: dark or light
                size: Chart area size in pixels (400-600)
                chart_kind: donut, pie or bar
                max_languages: Languages to show (at most 8)
                min_percentage: Hide languages below this share
                hide_border: Omit the outer border
                hide_title: Omit the title
                custom_title: Replace the default title
                show_percentages: Label segments with their share

            Returns:
                SVG document
            """
            options = LanguageStatsOptions(
                theme=theme,
                size=size,
                chart_kind=chart_kind,
                max_languages=max_languages,
                min_percentage=min_percentage,
                hide_border=hide_border,
                hide_title=hide_title,
                custom_title=custom_title,
                show_percentages=show_percentages,
            )
            try:
                result = await service.get_language_stats(username, options)
            except LangStatsError as e:
                logger.error("Language chart failed", username=username, error=str(e))
                raise ToolError(e.message) from e

            if result.document is None:
                raise ToolError("Chart rendering produced no document")
            return result.document

        @self._server.tool(
            name="language-stats",
            description="Get a GitHub user's language usage as structured data",
        )
        async def language_stats(
            username: str,
            max_languages: int = defaults.max_languages,
            min_percentage: float = defaults.min_percentage,
        ) -> dict[str, Any]:
            """Get raw language statistics.

            Args:
                username: GitHub login
                max_languages: Languages to return (at most 8)
                min_percentage: Drop languages below this share

            Returns:
                Languages, totals and response metadata, or a structured error
            """
            options = LanguageStatsOptions(
                max_languages=max_languages,
                min_percentage=min_percentage,
                theme=defaults.theme,
                raw=True,
            )
            try:
                result = await service.get_language_stats(username, options)
            except LangStatsError as e:
                logger.error("Language stats failed", username=username, error=str(e))
                return error_payload(e)

            return result.model_dump(mode="json", exclude={"document"})

        @self._server.tool(
            name="invalidate-cache",
            description="Drop cached language statistics for one user or everyone",
        )
        async def invalidate_cache(username: str | None = None) -> dict[str, Any]:
            """Invalidate cached statistics.

            Args:
                username: GitHub login, or omit to drop all language statistics

            Returns:
                Number of removed entries
            """
            if username:
                removed = await service.invalidate_subject(username)
            else:
                removed = await service.invalidate_language_stats()
            return {"username": username, "removed": removed}

        @self._server.tool(
            name="cache-stats",
            description="Cache hit rate, size and compression statistics",
        )
        async def cache_stats() -> dict[str, Any]:
            """Get cache statistics."""
            stats = await service.cache_stats()
            return {
                **stats.model_dump(),
                "hit_rate": stats.hit_rate,
                "compression_savings": stats.compression_savings,
            }

        logger.debug("Tools registered")
