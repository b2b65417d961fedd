from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Iterator

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from permission_store.configs.logging_config import get_logger
from permission_store.configs.settings import Settings
from permission_store.domain.codec import ResourceCodec
from permission_store.domain.entities.resources import Resource, ResourceType
from permission_store.domain.entities.user_permission import UserPermission
from permission_store.errors import RecordCorruptError, StorageUnavailableError

log = get_logger(__name__)

_RESOURCE_TYPES = tuple(ResourceType)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape KEYS/SCAN glob metacharacters so `value` only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


@contextmanager
def _storage_errors(op: str, user_id: str | None = None) -> Iterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        log.error("repo.permissions.%s storage_unavailable user_id=%s error=%s", op, user_id, e)
        raise StorageUnavailableError(f"permission store unavailable during {op}") from e


@contextmanager
def _undecodable_values(key: str) -> Iterator[None]:
    # redis-py decodes replies while parsing, before the codec sees them
    try:
        yield
    except UnicodeDecodeError as e:
        log.error("repo.permissions.decode_failed key=%s error=%s", key, e)
        raise RecordCorruptError(f"stored value under {key} is not valid UTF-8", key=key) from e


class PermissionsRepository:
    """
    Stores each `UserPermission` across several Redis keys:

        <prefix>:users                              set of every known user id
        <prefix>:permissions:<id>:<resource type>   hash of name -> encoded record

    Writes are not atomic across keys unless `atomic_writes` is set. Without
    it a reader racing a `put` for the same user may see new records before
    the stale ones are deleted. Callers that need a consistent view must
    serialize writers per user themselves.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str,
        codec: ResourceCodec | None = None,
        atomic_writes: bool = False,
    ):
        if not client.get_connection_kwargs().get("decode_responses"):
            # stored names are compared with str record names
            raise ValueError("redis client must be created with decode_responses=True")
        self._redis = client
        self._prefix = prefix
        self._codec = codec or ResourceCodec()
        self._atomic_writes = atomic_writes

    @classmethod
    def from_settings(cls, client: redis.Redis, settings: Settings) -> PermissionsRepository:
        return cls(
            client,
            prefix=settings.redis_prefix,
            atomic_writes=settings.redis_atomic_writes,
        )

    # ----------------------------
    # Keys
    # ----------------------------

    def _key(self, suffix: str) -> str:
        return f"{self._prefix}:{suffix}"

    @property
    def users_key(self) -> str:
        return self._key("users")

    def user_key(self, user_id: str, resource_type: ResourceType) -> str:
        return self._key(f"permissions:{user_id}:{resource_type.value}")

    # ----------------------------
    # Operations
    # ----------------------------

    async def put(self, permission: UserPermission) -> None:
        """Replace everything stored for `permission.id` with `permission`."""
        user_id = permission.id
        if not user_id:
            raise ValueError("user id missing")

        log.info(
            "repo.permissions.put user_id=%s %s atomic=%s",
            user_id,
            " ".join(f"{t.value}={len(permission.resources(t))}" for t in _RESOURCE_TYPES),
            self._atomic_writes,
        )
        with _storage_errors("put", user_id):
            async with self._redis.pipeline(transaction=False) as pipe:
                for resource_type in _RESOURCE_TYPES:
                    pipe.hkeys(self.user_key(user_id, resource_type))
                stored_names = await pipe.execute()

            async with self._redis.pipeline(transaction=self._atomic_writes) as pipe:
                for resource_type, existing in zip(_RESOURCE_TYPES, stored_names):
                    key = self.user_key(user_id, resource_type)
                    encoded = {
                        r.name: self._codec.encode(r) for r in permission.resources(resource_type)
                    }
                    if encoded:
                        pipe.hset(key, mapping=encoded)
                    revoked = set(existing) - encoded.keys()
                    if revoked:
                        log.info(
                            "repo.permissions.put revoke user_id=%s type=%s names=%s",
                            user_id,
                            resource_type.value,
                            sorted(revoked),
                        )
                        pipe.hdel(key, *sorted(revoked))
                pipe.sadd(self.users_key, user_id)
                await pipe.execute()

    async def get(self, user_id: str) -> UserPermission | None:
        log.info("repo.permissions.get user_id=%s", user_id)
        user_keys = self._key(f"permissions:{user_id}:*")
        with _storage_errors("get", user_id), _undecodable_values(user_keys):
            async with self._redis.pipeline(transaction=False) as pipe:
                pipe.sismember(self.users_key, user_id)
                for resource_type in _RESOURCE_TYPES:
                    pipe.hgetall(self.user_key(user_id, resource_type))
                indexed, *hashes = await pipe.execute()

        if not indexed and not any(hashes):
            log.info("repo.permissions.get not_found user_id=%s", user_id)
            return None
        return self._build(user_id, hashes)

    async def get_all_ids(self) -> set[str]:
        with _storage_errors("get_all_ids"):
            return set(await self._redis.smembers(self.users_key))

    async def get_all_by_id(self) -> dict[str, UserPermission]:
        user_ids = sorted(await self.get_all_ids())
        log.info("repo.permissions.get_all_by_id users=%s", len(user_ids))
        if not user_ids:
            return {}

        with _storage_errors("get_all_by_id"), _undecodable_values(self._key("permissions:*")):
            async with self._redis.pipeline(transaction=False) as pipe:
                for user_id in user_ids:
                    for resource_type in _RESOURCE_TYPES:
                        pipe.hgetall(self.user_key(user_id, resource_type))
                hashes = await pipe.execute()

        width = len(_RESOURCE_TYPES)
        return {
            user_id: self._build(user_id, hashes[i * width : (i + 1) * width])
            for i, user_id in enumerate(user_ids)
        }

    async def remove(self, user_id: str) -> None:
        log.info("repo.permissions.remove user_id=%s", user_id)
        with _storage_errors("remove", user_id):
            async with self._redis.pipeline(transaction=self._atomic_writes) as pipe:
                pipe.delete(*(self.user_key(user_id, t) for t in _RESOURCE_TYPES))
                pipe.srem(self.users_key, user_id)
                await pipe.execute()

    async def list_keys(self, pattern: str = "*") -> set[str]:
        """
        Administrative key listing under the prefix. Uses KEYS; keep it off hot paths.

        `pattern` is a glob; the prefix itself is matched literally.
        """
        with _storage_errors("list_keys"):
            return set(await self._redis.keys(f"{escape_glob(self._prefix)}:{pattern}"))

    async def list_user_keys(self, user_id: str) -> set[str]:
        """Every per-type key stored for `user_id`; glob characters in the id are literal."""
        return await self.list_keys(f"permissions:{escape_glob(user_id)}:*")

    # ----------------------------
    # Reconstruction
    # ----------------------------

    def _build(self, user_id: str, hashes: list[dict[str, str]]) -> UserPermission:
        fields: dict[str, frozenset[Resource]] = {}
        for resource_type, stored in zip(_RESOURCE_TYPES, hashes):
            key = self.user_key(user_id, resource_type)
            records = []
            for name, text in (stored or {}).items():
                records.append(self._decode(key, resource_type, name, text))
            fields[resource_type.value] = frozenset(records)
        return UserPermission(id=user_id, **fields)

    def _decode(self, key: str, resource_type: ResourceType, name: str, text: str) -> Resource:
        try:
            record = self._codec.decode(resource_type, text)
        except RecordCorruptError as e:
            e.key, e.field = key, name
            log.error("repo.permissions.decode_failed key=%s field=%s", key, name)
            raise
        if record.name != name:
            log.error(
                "repo.permissions.decode_failed key=%s field=%s record_name=%s",
                key,
                name,
                record.name,
            )
            raise RecordCorruptError(
                f"record name {record.name!r} does not match field {name!r}", key=key, field=name
            )
        return record
