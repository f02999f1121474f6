"""
Change feed for live catalog/admin views.

Every write bumps a per-table version counter; clients poll the versions and
re-fetch the queries whose table moved. Supports an in-memory fallback for
tests/local runs and a Redis-backed implementation for production.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

TABLES = ("products", "orders", "contacts", "users")


class ChangeFeed(Protocol):
    """Minimal interface for publishing and reading table versions."""

    def bump(self, table: str) -> int:
        ...

    def versions(self) -> dict[str, int]:
        ...


@dataclass
class InMemoryChangeFeed:
    """Process-local counters for testing/dev."""

    counters: dict[str, int] = field(default_factory=lambda: dict.fromkeys(TABLES, 0))

    def __post_init__(self):
        self._lock = threading.Lock()

    def bump(self, table: str) -> int:
        with self._lock:
            self.counters[table] = self.counters.get(table, 0) + 1
            return self.counters[table]

    def versions(self) -> dict[str, int]:
        with self._lock:
            return dict(self.counters)

    def reset(self) -> None:
        with self._lock:
            self.counters = dict.fromkeys(TABLES, 0)


@dataclass
class RedisChangeFeed:
    """Redis-backed counters using INCR/MGET, shared across workers."""

    url: str
    prefix: str = "storefront:changes"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    def bump(self, table: str) -> int:
        try:
            return int(self.client.incr(self._key(table)))
        except redis_exceptions.RedisError as exc:
            # The write has committed; only this notification is lost.
            logger.warning("Change feed bump for %s failed: %s", table, exc)
            self.client = redis.Redis.from_url(self.url)
            return 0

    def versions(self) -> dict[str, int]:
        values = self.client.mget([self._key(table) for table in TABLES])
        return {
            table: int(value) if value is not None else 0
            for table, value in zip(TABLES, values)
        }
