"""Process-wide cache, initialised explicitly at startup.

Read paths receive the cache through ``get_cache()``; writes that change
what those reads return call ``invalidate_product_caches()`` once their
unit of work has committed.
"""

import structlog

from delivery import config
from delivery.cache.memory import MemoryCache
from delivery.cache.port import CachePort

logger = structlog.get_logger(__name__)

PRODUCTS_NAMESPACE = "products:"

_current_cache: CachePort | None = None


def init_cache(cache: CachePort | None = None) -> CachePort:
    """Install ``cache`` (a fresh MemoryCache by default) as the process cache."""
    global _current_cache
    _current_cache = cache if cache is not None else MemoryCache(default_ttl=config.CACHE_TTL_SECONDS)
    return _current_cache


def get_cache() -> CachePort:
    if _current_cache is None:
        raise RuntimeError("Cache is not initialised; call init_cache() at startup")
    return _current_cache


def reset_cache() -> None:
    global _current_cache
    _current_cache = None


def invalidate_product_caches() -> None:
    """Drop cached catalogue reads. Never raises: stale reads expire anyway."""
    try:
        dropped = get_cache().invalidate(PRODUCTS_NAMESPACE)
    except Exception as exc:
        logger.warning("Product cache invalidation failed", error=str(exc))
        return
    logger.debug("Product caches invalidated", dropped=dropped)
