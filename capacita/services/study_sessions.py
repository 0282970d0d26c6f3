"""Process-local registry of study timers fed by client heartbeats."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Tuple

from capacita.services.timer import ActiveStudyTimer

MAX_HEARTBEAT_SECONDS = 60
DEFAULT_TARGET_MINUTES = 60
SESSION_IDLE_TTL_SECONDS = 6 * 60 * 60

SessionKey = Tuple[str, str]


@dataclass
class HeartbeatResult:
    timer: ActiveStudyTimer
    ticks: int
    completed_now: bool


class StudySessionRegistry:
    def __init__(self, idle_ttl: float = SESSION_IDLE_TTL_SECONDS) -> None:
        self._timers: Dict[SessionKey, ActiveStudyTimer] = {}
        self._last_seen: Dict[SessionKey, float] = {}
        self._idle_ttl = idle_ttl
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)

    def _evict_stale(self, now: float) -> None:
        cutoff = now - self._idle_ttl
        for key in [k for k, seen in self._last_seen.items() if seen < cutoff]:
            self._timers.pop(key, None)
            self._last_seen.pop(key, None)

    def get(self, user_id: str, course_id: str) -> ActiveStudyTimer | None:
        key = (user_id, course_id)
        now = time.monotonic()
        with self._lock:
            self._evict_stale(now)
            timer = self._timers.get(key)
            if timer is not None:
                self._last_seen[key] = now
            return timer

    def get_or_create(
        self, user_id: str, course_id: str, target_minutes: float | None
    ) -> ActiveStudyTimer:
        key = (user_id, course_id)
        now = time.monotonic()
        with self._lock:
            self._evict_stale(now)
            timer = self._timers.get(key)
            if timer is None:
                target = target_minutes if target_minutes else DEFAULT_TARGET_MINUTES
                timer = ActiveStudyTimer(target)
                self._timers[key] = timer
            self._last_seen[key] = now
            return timer

    def discard(self, user_id: str, course_id: str) -> None:
        with self._lock:
            self._timers.pop((user_id, course_id), None)
            self._last_seen.pop((user_id, course_id), None)

    def heartbeat(
        self,
        timer: ActiveStudyTimer,
        *,
        seconds: int,
        visible: bool,
        focused: bool,
    ) -> HeartbeatResult:
        """Apply the reported visibility, then advance up to 60 seconds."""

        seconds = max(0, min(int(seconds), MAX_HEARTBEAT_SECONDS))
        ticks, completed_now = timer.advance(seconds, visible=visible, focused=focused)
        return HeartbeatResult(timer=timer, ticks=ticks, completed_now=completed_now)

    def clear(self) -> None:
        with self._lock:
            self._timers.clear()
            self._last_seen.clear()


registry = StudySessionRegistry()
