from shared.database.postgres import (
    AsyncSessionFactory,
    Base,
    JSONType,
    dialect_name,
    get_async_session_factory,
)
from shared.database.redis_client import RedisClient, get_redis_client

__all__ = [
    "AsyncSessionFactory",
    "Base",
    "JSONType",
    "RedisClient",
    "dialect_name",
    "get_async_session_factory",
    "get_redis_client",
]
