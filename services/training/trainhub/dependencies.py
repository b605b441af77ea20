from fastapi import Request
from redis.asyncio import Redis

from shared.auth.dependencies import get_current_user_required, require_trainer
from trainhub.config import get_settings

# Learner routes need any authenticated user; trainer routes a trainer/admin role
get_current_user = get_current_user_required
get_trainer = require_trainer

__all__ = ["get_current_user", "get_redis", "get_settings", "get_trainer"]


def get_redis(request: Request) -> Redis | None:
    """App-wide Redis client, or None when it was never configured."""
    return getattr(request.app.state, "redis", None)
