"""Cache construction from configuration."""

from ..config.models import CacheBackend, CacheConfig
from ..utils.logging import get_logger
from .compression import Compressor
from .manager import CacheTier
from .memory import MemoryStore
from .protocol import DurableStore
from .sql import SqlStore

logger = get_logger("cache.factory")


def create_store(config: CacheConfig) -> DurableStore:
    """Create the durable store for the configured backend.

    Args:
        config: Cache configuration

    Returns:
        Unconnected durable store
    """
    match config.backend:
        case CacheBackend.MEMORY:
            return MemoryStore()
        case CacheBackend.SQL if config.url:
            return SqlStore(config.url, pool_size=config.pool_size)
        case _:
            raise ValueError(
                f"Cannot create cache store for backend {config.backend} (url={config.url!r})"
            )


def create_cache_tier(
    config: CacheConfig, compressor: Compressor | None = None
) -> CacheTier:
    """Create a cache tier for the configured backend.

    The tier is not started; call ``start()`` or use it as an async context
    manager.

    Args:
        config: Cache configuration
        compressor: Optional payload compressor

    Returns:
        Cache tier
    """
    logger.debug("Creating cache tier", backend=config.backend.value)
    return CacheTier(config, store=create_store(config), compressor=compressor)
