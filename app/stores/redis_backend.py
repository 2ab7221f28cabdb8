"""Redis backend for multi-instance deployments: one JSON value per record plus a set index."""
from __future__ import annotations

from collections.abc import Callable
from typing import Generic

import redis
from pydantic import ValidationError as PydanticValidationError

from app.errors import StorageError
from app.stores.base import R


class RedisStore(Generic[R]):
    """
    Keys:

    - ``{prefix}:{key}``  JSON document of one record
    - ``{index_key}``     set of all keys, used by :meth:`get_all`

    :param r: A Redis client (already connected).
    :param ttl_seconds: Optional native expiry applied on every write.
    """

    def __init__(
        self,
        r: redis.Redis,
        model: type[R],
        key_of: Callable[[R], str],
        prefix: str,
        index_key: str,
        ttl_seconds: int | None = None,
    ):
        self.r = r
        self.model = model
        self.key_of = key_of
        self.prefix = prefix
        self.index_key = index_key
        self.ttl_seconds = ttl_seconds

    # -------------------- helpers --------------------

    def _k(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _load(self, raw: bytes | str | None) -> R | None:
        if raw is None:
            return None
        try:
            return self.model.model_validate_json(raw)
        except PydanticValidationError as e:
            raise StorageError(f"Invalid record under {self.prefix}: {e}") from e

    def _dump(self, record: R) -> str:
        return record.model_dump_json(by_alias=True)

    # -------------------- API ------------------------

    def get(self, key: str) -> R | None:
        try:
            raw = self.r.get(self._k(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis get failed: {e}") from e
        return self._load(raw)

    def get_all(self) -> list[R]:
        try:
            members = sorted(m.decode() if isinstance(m, bytes) else m for m in self.r.smembers(self.index_key))
            if not members:
                return []
            values = self.r.mget([self._k(m) for m in members])
            # expired (TTL) entries leave stale index members behind
            stale = [m for m, v in zip(members, values) if v is None]
            if stale:
                self.r.srem(self.index_key, *stale)
        except redis.RedisError as e:
            raise StorageError(f"Redis scan failed: {e}") from e
        return [rec for rec in (self._load(v) for v in values) if rec is not None]

    def upsert(self, record: R) -> None:
        key = self.key_of(record)
        try:
            pipe = self.r.pipeline(transaction=True)
            pipe.set(self._k(key), self._dump(record), ex=self.ttl_seconds)
            pipe.sadd(self.index_key, key)
            pipe.execute()
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(self._k(key))
            pipe.srem(self.index_key, key)
            deleted, _ = pipe.execute()
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed: {e}") from e
        return bool(deleted)

    def replace_if(self, key: str, predicate: Callable[[R], bool], record: R) -> bool:
        """
        Conditional write using WATCH/MULTI/EXEC (optimistic locking).

        A concurrent writer touching the key aborts the transaction; the loop
        then re-reads and re-evaluates ``predicate`` against the new value.
        """
        k = self._k(key)
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k)
                        current = self._load(p.get(k))
                        if current is None or not predicate(current):
                            p.unwatch()
                            return False
                        p.multi()
                        p.set(k, self._dump(record), ex=self.ttl_seconds)
                        p.sadd(self.index_key, key)
                        p.execute()
                    return True
                except redis.WatchError:
                    continue
        except redis.RedisError as e:
            raise StorageError(f"Redis conditional write failed: {e}") from e
