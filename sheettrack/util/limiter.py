import logging
import time

import redis
from fastapi import HTTPException, Request, status

from sheettrack.util.settings import Settings

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, redis_host: str, redis_port: int, db: int):
        self.redis_pool = redis.ConnectionPool(
            host=redis_host, port=redis_port, db=db, decode_responses=True
        )

    def get_redis(self):
        return redis.Redis(connection_pool=self.redis_pool)

    def is_rate_limited(self, key: str, max_requests: int, window: int) -> bool:
        current = time.time()
        window_start = current - window
        redis_conn = self.get_redis()
        with redis_conn.pipeline() as pipe:
            try:
                pipe.zremrangebyscore(key, 0, window_start)
                pipe.zcard(key)
                pipe.zadd(key, {str(current): current})
                pipe.expire(key, window)
                results = pipe.execute()
            except redis.RedisError as e:
                logger.exception("Rate limiter unavailable")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Redis error: {str(e)}",
                ) from e
        return results[1] >= max_requests


limiter = None


def get_limiter():
    global limiter
    config = Settings().rate_limit
    if limiter is None:
        limiter = RateLimiter(config.redis_host, config.redis_port, config.db)
    return limiter


async def rate_limit(request: Request):
    config = Settings().rate_limit
    if not config.enable:
        return
    client = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client}:{request.url.path}"
    if get_limiter().is_rate_limited(key, config.max_requests, config.window):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
        )
