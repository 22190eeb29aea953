"""
Transient displays that hide themselves after a fixed dwell time.

Timers are deadlines against an injectable clock rather than background
threads, so a Streamlit rerun (or a test) decides visibility by asking.
"""

import time
from typing import Callable, Generic, Optional, TypeVar

from services.chat_service.models import EmotionAnnotation

T = TypeVar("T")


class TransientDisplay(Generic[T]):
    """
    Holds at most one value until its deadline passes. Showing a new value
    before the previous one expires replaces it and restarts the timer.
    """

    def __init__(self, dwell_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.dwell_seconds = dwell_seconds
        self.clock = clock
        self._value: Optional[T] = None
        self._expires_at: Optional[float] = None
        # Bumped on every show/cancel so renderers can tell a reset from a stale timer
        self.generation = 0

    def show(self, value: T):
        self._value = value
        self._expires_at = self.clock() + self.dwell_seconds
        self.generation += 1

    def cancel(self):
        if self._value is not None:
            self.generation += 1
        self._value = None
        self._expires_at = None

    def _expire_if_due(self):
        if self._expires_at is not None and self.clock() >= self._expires_at:
            self._value = None
            self._expires_at = None

    def current(self) -> Optional[T]:
        self._expire_if_due()
        return self._value

    @property
    def is_visible(self) -> bool:
        return self.current() is not None

    def remaining_seconds(self) -> float:
        self._expire_if_due()
        if self._expires_at is None:
            return 0.0
        return max(0.0, self._expires_at - self.clock())


class EmotionDisplay(TransientDisplay[EmotionAnnotation]):
    """Emotion indicator shown next to the transcript after a reply"""

    def __init__(self, dwell_seconds: float = 8.0, clock: Callable[[], float] = time.monotonic):
        super().__init__(dwell_seconds, clock)
