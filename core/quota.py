"""Usage Quota - counts generated artifacts against a configured limit.

Counts and a capped usage log live in a UsageStore: an in-process store, or
Redis when ``quota.redis_url`` is configured and reachable.
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from redis import Redis

from core.config_loader import QuotaConfig
from core.errors import QuotaExceededError

logger = logging.getLogger(__name__)


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    parsed = urlparse(url)
    if parsed.password:
        return parsed._replace(
            netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
        ).geturl()
    return url


class UsageStore(ABC):

    @abstractmethod
    def get_count(self) -> int:
        pass

    @abstractmethod
    def increment(self) -> int:
        """Increment the counter and return the new value."""
        pass

    @abstractmethod
    def log_usage(self, entry: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def recent_usage(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent usage entries, newest first."""
        pass


class InMemoryUsageStore(UsageStore):
    """Process-local store; counts reset on restart."""

    def __init__(self, max_log_entries: int = 100):
        self.max_log_entries = max_log_entries
        self._count = 0
        self._log: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def get_count(self) -> int:
        return self._count

    def increment(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def log_usage(self, entry: Dict[str, Any]) -> None:
        with self._lock:
            self._log.insert(0, entry)
            del self._log[self.max_log_entries:]

    def recent_usage(self, limit: int = 100) -> List[Dict[str, Any]]:
        return list(self._log[:limit])


class RedisUsageStore(UsageStore):
    """
    Redis-backed store shared by every worker process.

    Keys: ``<prefix>:count`` (INCR counter) and ``<prefix>:log`` (LPUSH list
    trimmed to ``max_log_entries``).
    """

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "lobbymatch:usage",
        max_log_entries: int = 100,
        client: Optional[Redis] = None
    ):
        self.key_prefix = key_prefix
        self.max_log_entries = max_log_entries
        self._redis = client or Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        self._redis.ping()
        logger.info(f"Usage store connected to Redis at {_sanitize_url(redis_url)}")

    @property
    def count_key(self) -> str:
        return f"{self.key_prefix}:count"

    @property
    def log_key(self) -> str:
        return f"{self.key_prefix}:log"

    def get_count(self) -> int:
        value = self._redis.get(self.count_key)
        return int(value) if value else 0

    def increment(self) -> int:
        return int(self._redis.incr(self.count_key))

    def log_usage(self, entry: Dict[str, Any]) -> None:
        try:
            self._redis.lpush(self.log_key, json.dumps(entry))
            self._redis.ltrim(self.log_key, 0, self.max_log_entries - 1)
        except Exception as e:
            logger.warning(f"Failed to log usage: {e}")

    def recent_usage(self, limit: int = 100) -> List[Dict[str, Any]]:
        entries = []
        for raw in self._redis.lrange(self.log_key, 0, limit - 1):
            try:
                entries.append(json.loads(raw))
            except json.JSONDecodeError:
                entries.append({"raw": raw})
        return entries


def build_usage_store(config: QuotaConfig) -> UsageStore:
    """Redis store when configured and reachable, otherwise in-process."""
    if config.redis_url:
        try:
            return RedisUsageStore(
                config.redis_url,
                key_prefix=config.key_prefix,
                max_log_entries=config.usage_log_max_entries,
            )
        except Exception as e:
            logger.warning(f"Usage store Redis unavailable, counting in-process: {e}")
    return InMemoryUsageStore(max_log_entries=config.usage_log_max_entries)


class UsageQuota:
    """
    Explicit usage quota.

    ``check()`` before starting work, ``increment()`` once the artifact has
    been produced. A disabled quota never refuses and reports ``None``
    remaining.
    """

    def __init__(self, store: UsageStore, limit: int = 20, enabled: bool = True):
        self.store = store
        self.limit = limit
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: QuotaConfig, store: Optional[UsageStore] = None) -> "UsageQuota":
        return cls(store or build_usage_store(config), limit=config.limit, enabled=config.enabled)

    @property
    def used(self) -> int:
        return self.store.get_count()

    def remaining(self) -> Optional[int]:
        if not self.enabled:
            return None
        return max(0, self.limit - self.used)

    def check(self) -> None:
        if self.enabled and self.used >= self.limit:
            raise QuotaExceededError(
                self.limit,
                f"Usage limit reached ({self.limit} memos). Contact the site owner for additional access."
            )

    def increment(self, entry: Optional[Dict[str, Any]] = None) -> Optional[int]:
        """Record one use; returns the remaining allowance."""
        count = self.store.increment()
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "count": count,
            **(entry or {}),
        }
        self.store.log_usage(record)
        logger.info(f"Usage {count}/{self.limit if self.enabled else 'unlimited'}")
        return self.remaining()
