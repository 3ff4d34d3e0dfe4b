"""Periodic scheduling against a wrapping 32-bit millisecond tick."""

from __future__ import annotations

import time
from collections.abc import Callable

TICK_MASK = 0xFFFFFFFF
SCHEDULER_DISABLED = 0xFFFFFFFF


def _default_clock() -> int:
    return int(time.monotonic() * 1000) & TICK_MASK


class SyncScheduler:
    """Fires at ``offset + n * period`` ticks, keeping calls in a fixed phase."""

    def __init__(
        self,
        enable: bool = False,
        period: int = 0,
        offset: int = 0,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._clock = clock or _default_clock
        self._period = period
        self._offset = offset
        self.next_time = 0
        if enable:
            self.update_next_time()
        else:
            self.disable()

    @property
    def period(self) -> int:
        return self._period

    @period.setter
    def period(self, value: int) -> None:
        self._period = value
        self.update_next_time()

    @property
    def offset(self) -> int:
        return self._offset

    @offset.setter
    def offset(self, value: int) -> None:
        self._offset = value
        self.update_next_time()

    @property
    def last_time(self) -> int:
        """The tick of the previous firing."""
        return (self.next_time - self._period) & TICK_MASK

    def set_period_and_offset(self, period: int, offset: int) -> None:
        """Change both period and offset, then reschedule."""
        self._period = period
        self._offset = offset
        self.update_next_time()

    def disable(self) -> None:
        if self.is_enabled():
            self.next_time = SCHEDULER_DISABLED

    def enable(self) -> None:
        if self.is_disabled():
            self.update_next_time()

    def is_disabled(self) -> bool:
        return self.next_time == SCHEDULER_DISABLED

    def is_enabled(self) -> bool:
        return self.next_time != SCHEDULER_DISABLED

    def is_time(self) -> bool:
        """Return True once the next firing has passed, and reschedule."""
        if self._clock() > self.next_time:
            self.update_next_time()
            return True
        return False

    def remaining(self) -> int:
        """Ticks left until the next firing, 0 if it is due now."""
        if self.is_time():
            return 0
        return (self.next_time - self._clock()) & TICK_MASK

    def update_next_time(self) -> None:
        """Move the next firing to the first slot after the current tick."""
        if self._period == 0:
            self.disable()
            return
        now = self._clock()
        if self._offset > now:
            self.next_time = self._offset
            return
        n = (now - self._offset) // self._period
        next_time = (self._offset + (n + 1) * self._period) & TICK_MASK
        self.next_time = 0 if next_time == SCHEDULER_DISABLED else next_time