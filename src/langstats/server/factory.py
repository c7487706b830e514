"""Server factory for creating MCP server instances."""

from ..config.models import LangStatsConfig
from ..service.factory import create_service
from ..utils.logging import get_logger
from .mcp_server import LangStatsServer

logger = get_logger("mcp.factory")


def create_mcp_server(config: LangStatsConfig) -> LangStatsServer:
    """Create MCP server with all dependencies.

    Args:
        config: Application configuration

    Returns:
        Configured MCP server instance; the cache starts with the runner
    """
    logger.info("Creating MCP server", name=config.server.name)

    components = create_service(config)
    mcp_server = LangStatsServer(config=config, components=components)

    logger.info("MCP server created successfully")
    return mcp_server
