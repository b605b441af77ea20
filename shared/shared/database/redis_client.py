from typing import Any

import redis.asyncio as redis

RedisClient = redis.Redis


def get_redis_client(redis_url: str, **kwargs: Any) -> redis.Redis:
    """Pooled async client. Callers treat every Redis op as best-effort."""
    options: dict[str, Any] = {
        "decode_responses": True,
        "socket_timeout": 5,
        "health_check_interval": 30,
    }
    options.update(kwargs)
    return redis.from_url(redis_url, **options)
