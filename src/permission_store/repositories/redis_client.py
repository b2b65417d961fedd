import redis.asyncio as redis

from permission_store.configs.settings import Settings
from permission_store.configs.logging_config import get_logger

log = get_logger(__name__)


class RedisClient:
    """
    Process-wide Redis connection. Pooling and socket timeouts are left to
    redis-py; the repository never retries on its own.
    """

    client: redis.Redis = None

    async def connect(self, settings: Settings) -> redis.Redis:
        try:
            log.info("redis.connect url=%s", settings.redis_url)
            self.client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_timeout=settings.redis_socket_timeout,
                socket_connect_timeout=settings.redis_socket_timeout,
            )
            await self.client.ping()
            log.info("redis.connected")
        except Exception as e:
            log.error("redis.connect_failed error=%s", e)
            raise
        return self.client

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None


redis_client = RedisClient()
