"""
Redis cache for storefront lookups.

Three key spaces are cached: catalog listings (product id lists per
filter), the category navigation menu and per-path SEO overrides. Keys
look like ``{prefix}:{space}:{key}``. When Redis is unreachable every
lookup falls through to the database loader.
"""

import logging
import json
from typing import Any, Optional, Callable
from decimal import Decimal

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)

CATALOG = 'catalog'
NAVIGATION = 'navigation'
SEO = 'seo'

# Config key holding each space's TTL in seconds
SPACE_TTL_SETTINGS = {
    CATALOG: 'CACHE_CATALOG_TTL',
    NAVIGATION: 'CACHE_NAVIGATION_TTL',
    SEO: 'CACHE_SEO_TTL',
}


def _encode(value: Any) -> str:
    def default(obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return {"__decimal__": str(obj)}
        raise TypeError(f"Cannot cache {type(obj).__name__}")
    return json.dumps(value, default=default)


def _decode(raw: str) -> Any:
    return json.loads(raw, object_hook=lambda d: Decimal(d["__decimal__"]) if "__decimal__" in d else d)


class StoreCache:
    """Cache-aside helper over a single Redis connection."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self.enabled = False
        self.prefix = 'lumicea'
        self.ttls: dict = {}
        self.default_ttl = 60

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.enabled = app.config.get('CACHE_ENABLED', True)
        self.prefix = app.config.get('CACHE_KEY_PREFIX', 'lumicea')
        self.default_ttl = app.config.get('CACHE_DEFAULT_TTL', 60)
        self.ttls = {space: app.config.get(setting, self.default_ttl)
                     for space, setting in SPACE_TTL_SETTINGS.items()}

        if not self.enabled:
            logger.info("[CACHE] Disabled by configuration")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            self.client.ping()
            logger.info(f"[CACHE] Connected to {redis_url}")
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unavailable ({e}); serving from the database")
            self.enabled = False
            self.client = None

    def is_available(self) -> bool:
        if not self.enabled or self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key(self, space: str, key: str) -> str:
        return f"{self.prefix}:{space}:{key}"

    def get(self, space: str, key: str) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            raw = self.client.get(self.key(space, key))
            return None if raw is None else _decode(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Read failed for {space}:{key}: {e}")
            return None

    def set(self, space: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.setex(self.key(space, key), ttl or self.ttls.get(space, self.default_ttl), _encode(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for {space}:{key}: {e}")
            return False

    def memoize(self, space: str, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, or load it from the database and cache it."""
        cached = self.get(space, key)
        if cached is not None:
            return cached
        value = loader()
        self.set(space, key, value, ttl)
        return value

    def clear(self, space: str) -> int:
        """Delete every key in a space; returns the number removed."""
        if not self.is_available():
            return 0
        pattern = self.key(space, '*')
        removed = 0
        try:
            for batch in _batched(self.client.scan_iter(match=pattern, count=100), 100):
                removed += self.client.delete(*batch)
        except RedisError as e:
            logger.warning(f"[CACHE] Clearing {pattern} failed: {e}")
            return removed
        if removed:
            logger.info(f"[CACHE] Cleared {pattern} ({removed} keys)")
        return removed


def _batched(iterable, size: int):
    batch = []
    for item in iterable:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


_cache: Optional[StoreCache] = None


def init_cache(app: Flask) -> None:
    global _cache
    _cache = StoreCache(app)
    app.extensions['cache'] = _cache


def get_cache() -> StoreCache:
    if _cache is None:
        raise RuntimeError("Cache not initialized.")
    return _cache


def invalidate_catalog_cache() -> None:
    """Drop cached listings and the navigation menu after a catalog write."""
    cache = get_cache()
    cache.clear(CATALOG)
    cache.clear(NAVIGATION)


def invalidate_seo_cache() -> None:
    get_cache().clear(SEO)
