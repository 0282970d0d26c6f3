"""Visibility-aware study timer.

Two counters advance on every one-second tick while the timer runs: wall
time always, active time only while the page is both visible and focused.
Completion fires once when active time reaches the target and is terminal
until ``reset()``.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

TimeUpdateCallback = Callable[[int, int], None]
CompletionCallback = Callable[[], None]


class TimerState(str, Enum):
    Idle = "idle"
    Running = "running"
    Paused = "paused"
    Completed = "completed"


def format_time(seconds: int) -> str:
    """``HH:MM:SS`` from one hour up, ``MM:SS`` below."""

    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class ActiveStudyTimer:
    def __init__(
        self,
        target_minutes: float = 60,
        *,
        on_time_update: Optional[TimeUpdateCallback] = None,
        on_completion: Optional[CompletionCallback] = None,
    ) -> None:
        if target_minutes < 0:
            raise ValueError("A duração alvo não pode ser negativa.")
        self.target_seconds = int(round(target_minutes * 60))
        self._on_time_update = on_time_update
        self._on_completion = on_completion
        self._lock = threading.RLock()
        self._state = TimerState.Idle
        self._active_seconds = 0
        self._total_seconds = 0
        self._page_visible = True
        self._window_focused = True

    # ---------- state ----------
    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def active_seconds(self) -> int:
        return self._active_seconds

    @property
    def total_seconds(self) -> int:
        return self._total_seconds

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.Running

    @property
    def is_completed(self) -> bool:
        return self._state is TimerState.Completed

    @property
    def is_attentive(self) -> bool:
        return self._page_visible and self._window_focused

    @property
    def progress(self) -> float:
        if self.target_seconds == 0:
            return 100.0 if self.is_completed else 0.0
        return min(self._active_seconds / self.target_seconds * 100, 100.0)

    @property
    def remaining_seconds(self) -> int:
        return max(self.target_seconds - self._active_seconds, 0)

    # ---------- actions ----------
    def start(self) -> None:
        fire_completion = False
        with self._lock:
            if self._state in (TimerState.Running, TimerState.Completed):
                return
            if self.target_seconds == 0:
                self._state = TimerState.Completed
                fire_completion = True
            else:
                self._state = TimerState.Running
        if fire_completion:
            self._notify_completion()

    def pause(self) -> None:
        with self._lock:
            if self._state is TimerState.Running:
                self._state = TimerState.Paused

    def reset(self) -> None:
        with self._lock:
            self._state = TimerState.Idle
            self._active_seconds = 0
            self._total_seconds = 0

    def set_visibility(self, visible: bool) -> None:
        with self._lock:
            self._page_visible = bool(visible)

    def set_focus(self, focused: bool) -> None:
        with self._lock:
            self._window_focused = bool(focused)

    def tick(self) -> bool:
        """Advance one second. Returns False when the timer is not running."""

        with self._lock:
            if self._state is not TimerState.Running:
                return False
            self._total_seconds += 1
            if self.is_attentive:
                self._active_seconds += 1
            completed = self._active_seconds >= self.target_seconds
            if completed:
                self._state = TimerState.Completed
            active, total = self._active_seconds, self._total_seconds

        if self._on_time_update is not None:
            self._on_time_update(active, total)
        if completed:
            self._notify_completion()
        return True

    def advance(
        self,
        seconds: int,
        *,
        visible: Optional[bool] = None,
        focused: Optional[bool] = None,
    ) -> tuple[int, bool]:
        """Apply visibility, then tick up to ``seconds`` times as one step.

        Returns the ticks applied and whether this call completed the timer.
        """

        with self._lock:
            if visible is not None:
                self._page_visible = bool(visible)
            if focused is not None:
                self._window_focused = bool(focused)
            was_completed = self._state is TimerState.Completed
            ticks = 0
            for _ in range(max(0, int(seconds))):
                if not self.tick():
                    break
                ticks += 1
            return ticks, not was_completed and self._state is TimerState.Completed

    def _notify_completion(self) -> None:
        LOGGER.debug("Meta de estudo atingida (%ss)", self.target_seconds)
        if self._on_completion is not None:
            self._on_completion()

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "active_seconds": self._active_seconds,
                "total_seconds": self._total_seconds,
                "target_seconds": self.target_seconds,
                "remaining_seconds": self.remaining_seconds,
                "progress": round(self.progress, 2),
                "is_page_visible": self.is_attentive,
                "is_completed": self.is_completed,
                "formatted_active_time": format_time(self._active_seconds),
                "formatted_total_time": format_time(self._total_seconds),
                "formatted_remaining_time": format_time(self.remaining_seconds),
                "formatted_target_time": format_time(self.target_seconds),
            }


class TimerTicker:
    """Drive ``timer.tick()`` from a background thread on a fixed interval."""

    def __init__(self, timer: ActiveStudyTimer, interval: float = 1.0) -> None:
        self._timer = timer
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.alive:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="study-timer", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self._timer.tick()
            if self._timer.is_completed:
                break
