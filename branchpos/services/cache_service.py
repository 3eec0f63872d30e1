"""
Redis cache for business-scoped read models (the branch catalog listing).

Keys: {prefix}:business:{business_id}:{module}:{key}

Every Redis failure is logged and treated as a cache miss, so a down Redis
slows the POS down but never breaks a sale.
"""

import logging
import json
from typing import Any, Callable, Dict, Optional
from decimal import Decimal

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)

DECIMAL_TAG = '__decimal__'


def encode(value: Any) -> str:
    """JSON with Decimals tagged, so prices come back exact."""
    def default(obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return {DECIMAL_TAG: str(obj)}
        raise TypeError(f"Cannot cache {type(obj).__name__}")
    return json.dumps(value, default=default)


def decode(raw: str) -> Any:
    def object_hook(obj: Dict[str, Any]) -> Any:
        if DECIMAL_TAG in obj:
            return Decimal(obj[DECIMAL_TAG])
        return obj
    return json.loads(raw, object_hook=object_hook)


class CacheService:
    """Cache-aside helper over a Redis client."""

    def __init__(self, client: redis.Redis, prefix: str = 'branchpos', default_ttl: int = 60):
        self.client = client
        self.prefix = prefix
        self.default_ttl = default_ttl

    def build_key(self, business_id: int, module: str, key: str) -> str:
        return f"{self.prefix}:business:{business_id}:{module}:{key}"

    def get(self, business_id: int, module: str, key: str) -> Optional[Any]:
        cache_key = self.build_key(business_id, module, key)
        try:
            raw = self.client.get(cache_key)
            return None if raw is None else decode(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] read {cache_key} failed: {e}")
            return None

    def set(self, business_id: int, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        cache_key = self.build_key(business_id, module, key)
        try:
            self.client.setex(cache_key, ttl or self.default_ttl, encode(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] write {cache_key} failed: {e}")
            return False

    def memoize(self, business_id: int, module: str, key: str,
                loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, or load it, store it and return it."""
        cached = self.get(business_id, module, key)
        if cached is not None:
            logger.debug(f"[CACHE] hit {module}:{key} business={business_id}")
            return cached
        value = loader()
        self.set(business_id, module, key, value, ttl)
        return value

    def invalidate_module(self, business_id: int, module: str) -> int:
        """Delete every key of one module for one business. Returns the count."""
        pattern = self.build_key(business_id, module, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"[CACHE] invalidate {pattern} failed: {e}")
            return 0
        if keys:
            logger.info(f"[CACHE] invalidated {pattern} ({len(keys)} keys)")
        return len(keys)


def init_cache(app: Flask) -> Optional[CacheService]:
    """
    Connect to Redis and register the service as app.extensions['cache'].

    Registers None when caching is disabled or Redis is unreachable at start;
    callers then read straight from the database.
    """
    app.extensions['cache'] = None
    if not app.config.get('CACHE_ENABLED', True):
        logger.info("[CACHE] disabled via config")
        return None

    redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
            retry_on_timeout=True,
            health_check_interval=30
        )
        client.ping()
    except RedisError as e:
        logger.warning(f"[CACHE] Redis unreachable at {redis_url}: {e}. Running without cache.")
        return None

    service = CacheService(
        client,
        prefix=app.config.get('CACHE_KEY_PREFIX', 'branchpos'),
        default_ttl=app.config.get('CACHE_DEFAULT_TTL', 60)
    )
    app.extensions['cache'] = service
    logger.info(f"[CACHE] connected to {redis_url}")
    return service
