from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis
from redis.exceptions import ConnectionError as RedisConnectionError

from permission_store.repositories.permissions_repository import PermissionsRepository

PREFIX = "unittests"


@pytest_asyncio.fixture
async def redis():
    client = FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def repo(redis) -> PermissionsRepository:
    return PermissionsRepository(redis, prefix=PREFIX)


@pytest.fixture
def down_redis():
    """A client whose every round trip fails as if Redis were unreachable."""
    err = RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
    pipe = MagicMock()
    pipe.execute = AsyncMock(side_effect=err)
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=False)

    client = MagicMock()
    client.get_connection_kwargs.return_value = {"decode_responses": True}
    client.pipeline.return_value = pipe
    for command in ("smembers", "keys", "ping"):
        setattr(client, command, AsyncMock(side_effect=err))
    return client
