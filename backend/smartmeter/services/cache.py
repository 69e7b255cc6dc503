import json
import logging

import redis

from smartmeter.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)

def set_cache(key: str, value, ex: int = 3600):
    if not settings.cache_enabled:
        return
    try:
        redis_client.set(key, json.dumps(value), ex=ex)
    except redis.RedisError as e:
        logger.warning("Redis caching error for %s: %s", key, e)

def get_cache(key: str):
    if not settings.cache_enabled:
        return None
    try:
        v = redis_client.get(key)
    except redis.RedisError as e:
        logger.warning("Redis read error for %s: %s", key, e)
        return None
    if v is None:
        return None
    try:
        return json.loads(v)
    except ValueError:
        return v

def invalidate_prefix(prefix: str):
    if not settings.cache_enabled:
        return
    try:
        for key in redis_client.scan_iter(match=f"{prefix}*"):
            redis_client.delete(key)
    except redis.RedisError as e:
        logger.warning("Redis invalidation error for %s: %s", prefix, e)
