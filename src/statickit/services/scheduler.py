"""Debounced auto-save scheduling."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Protocol, TypeVar

_logger = logging.getLogger(__name__)

StateT = TypeVar("StateT")


class Clock(Protocol):
    """Source of monotonic time in seconds."""

    def monotonic(self) -> float:
        """Return the current monotonic time."""


class MonotonicClock(Clock):
    """Clock backed by ``time.monotonic``."""

    def monotonic(self) -> float:
        return time.monotonic()


class SchedulerStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"


@dataclass
class SaveScheduler(Generic[StateT]):
    """Coalesces state changes into debounced and periodic saves.

    Only the most recently scheduled state is saved, and a busy flag keeps at
    most one save running. ``run_pending`` performs whatever save is due;
    ``run`` drives it from a background task.
    """

    save: Callable[[StateT], Awaitable[bool]]
    clock: Clock = field(default_factory=MonotonicClock)
    debounce_seconds: float = 2.0
    periodic_seconds: float = 30.0
    _pending: StateT | None = field(default=None, init=False)
    _debounce_deadline: float | None = field(default=None, init=False)
    _periodic_deadline: float | None = field(default=None, init=False)
    _saving: bool = field(default=False, init=False)
    _idle: asyncio.Event | None = field(default=None, init=False)
    _wakeup: asyncio.Event | None = field(default=None, init=False)
    _stopped: bool = field(default=False, init=False)

    @property
    def status(self) -> SchedulerStatus:
        if self._saving:
            return SchedulerStatus.SAVING
        if self._pending is not None:
            return SchedulerStatus.PENDING
        return SchedulerStatus.IDLE

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, state: StateT) -> None:
        """Queue ``state`` and restart the debounce window."""
        now = self.clock.monotonic()
        self._pending = state
        self._debounce_deadline = now + self.debounce_seconds
        if self._periodic_deadline is None:
            self._periodic_deadline = now + self.periodic_seconds
        self._wakeup_event().set()

    def cancel(self) -> None:
        """Drop the pending state and both deadlines."""
        self._pending = None
        self._debounce_deadline = None
        self._periodic_deadline = None

    def seconds_until_due(self) -> float | None:
        """Return the delay until the next save is due, or None if idle."""
        if self._pending is None:
            return None
        deadlines = [
            d
            for d in (self._debounce_deadline, self._periodic_deadline)
            if d is not None
        ]
        if not deadlines:
            return 0.0
        return max(0.0, min(deadlines) - self.clock.monotonic())

    def is_due(self) -> bool:
        delay = self.seconds_until_due()
        return delay is not None and delay <= 0

    async def run_pending(self) -> bool | None:
        """Save the pending state if a deadline has passed.

        Returns the save outcome, or None when nothing ran.
        """
        if self._saving or not self.is_due():
            return None
        return await self._save_pending()

    async def flush(self) -> bool | None:
        """Save the pending state now, after any in-flight save finishes."""
        self._debounce_deadline = None
        await self.wait_idle()
        if self._pending is None:
            return None
        return await self._save_pending()

    async def wait_idle(self) -> None:
        """Wait for an in-flight save, if any, to finish."""
        while self._saving:
            await self._idle_event().wait()

    async def run(self) -> None:
        """Drive due saves until ``stop`` is called."""
        wakeup = self._wakeup_event()
        while not self._stopped:
            if self._saving:
                await self.wait_idle()
                continue
            wakeup.clear()
            try:
                await asyncio.wait_for(wakeup.wait(), timeout=self.seconds_until_due())
            except TimeoutError:
                pass
            if self._stopped:
                break
            try:
                await self.run_pending()
            except Exception:
                _logger.exception("Scheduled session save failed")

    def stop(self) -> None:
        """Ask the ``run`` loop to exit."""
        self._stopped = True
        self._wakeup_event().set()

    async def _save_pending(self) -> bool:
        state = self._pending
        if state is None:
            return False
        self._pending = None
        self._debounce_deadline = None
        self._periodic_deadline = None
        self._saving = True
        self._idle_event().clear()
        ok = False
        try:
            ok = await self.save(state)
        finally:
            self._saving = False
            if not ok and self._pending is None:
                self._requeue(state)
            self._idle_event().set()
        return ok

    def _requeue(self, state: StateT) -> None:
        """Keep a failed state around for the periodic retry."""
        self._pending = state
        self._periodic_deadline = self.clock.monotonic() + self.periodic_seconds

    def _wakeup_event(self) -> asyncio.Event:
        if self._wakeup is None:
            self._wakeup = asyncio.Event()
        return self._wakeup

    def _idle_event(self) -> asyncio.Event:
        if self._idle is None:
            self._idle = asyncio.Event()
            self._idle.set()
        return self._idle
