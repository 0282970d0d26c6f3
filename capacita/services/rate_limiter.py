"""Per-scope rate limiting, in memory or shared through Redis."""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque, DefaultDict, Dict, Protocol, Tuple
from urllib.parse import urlsplit

from redis import Redis
from redis.exceptions import RedisError

from capacita.core.settings import settings

LOGGER = logging.getLogger(__name__)

Decision = Tuple[bool, float | None]


class Limiter(Protocol):
    def register_attempt(self, key: str) -> Decision: ...


def _mask_redis_url(url: str) -> str:
    parsed = urlsplit(url)
    host = parsed.hostname or "localhost"
    port = f":{parsed.port}" if parsed.port else ""
    return f"{parsed.scheme or 'redis'}://{host}{port}{parsed.path or ''}"


class FixedWindowRateLimiter:
    """Sliding log of attempt timestamps per key, kept in process memory."""

    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self._max_attempts = max_attempts
        self._window = float(window_seconds)
        self._hits: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def register_attempt(self, key: str) -> Decision:
        now = time.monotonic()
        cutoff = now - self._window
        with self._lock:
            bucket = self._hits[key]
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= self._max_attempts:
                return False, max(bucket[0] + self._window - now, 0.0)
            bucket.append(now)
            return True, None


_RATE_LIMIT_LUA = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
if redis.call('ZCARD', key) >= limit then
  local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
  if oldest[2] then
    return {0, tostring(oldest[2] + window - now)}
  end
  return {0, tostring(window)}
end

redis.call('ZADD', key, now, now)
redis.call('EXPIRE', key, math.ceil(window))
return {1, '0'}
"""


class RedisFixedWindowRateLimiter:
    """Same policy as the in-memory limiter, shared across instances."""

    def __init__(
        self, client: Redis, max_attempts: int, window_seconds: int, *, namespace: str
    ) -> None:
        self._max_attempts = int(max_attempts)
        self._window = float(window_seconds)
        self._namespace = namespace
        self._script = client.register_script(_RATE_LIMIT_LUA)

    def register_attempt(self, key: str) -> Decision:
        allowed, retry_after = self._script(
            keys=[f"rate:{self._namespace}:{key}"],
            args=[time.time(), self._window, self._max_attempts],
        )
        if int(allowed):
            return True, None
        return False, max(float(retry_after), 0.0)


def build_limiter(namespace: str, max_attempts: int, window_seconds: int) -> Limiter:
    if settings.redis_url:
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=False)
            limiter = RedisFixedWindowRateLimiter(
                client, max_attempts, window_seconds, namespace=namespace
            )
        except RedisError as exc:
            LOGGER.warning(
                "Falha ao inicializar Redis para rate limiting (%s); usando memória local",
                namespace,
                exc_info=exc,
            )
        else:
            LOGGER.info(
                "Usando Redis para rate limiting (%s)",
                namespace,
                extra={"redis": _mask_redis_url(settings.redis_url)},
            )
            return limiter
    return FixedWindowRateLimiter(max_attempts, window_seconds)


_limiters: Dict[str, Limiter] = {
    "auth": build_limiter(
        "auth",
        settings.auth_rate_limit_max_attempts,
        settings.auth_rate_limit_window_seconds,
    ),
    "ai": build_limiter(
        "ai",
        settings.ai_rate_limit_max_attempts,
        settings.ai_rate_limit_window_seconds,
    ),
}


def check_rate_limit(scope: str, identifier: str) -> float | None:
    """None when allowed, otherwise seconds until the next attempt is allowed."""

    allowed, retry_after = _limiters[scope].register_attempt(identifier)
    if allowed:
        return None
    return retry_after or 0.0
