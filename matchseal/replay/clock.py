# Copyright (C) 2025 Richard Owen
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""Cooperative timers used to drive replay sessions.

Every scheduled call hands back a :class:`CancellationToken`. Cancelling a
token (even one that already fired, or twice) is always safe, which is what
lets a replay session drop its pending delivery on pause, seek or a speed
change without tracking timer ids.

Two clocks share the same interface. :class:`ManualClock` only moves when
told to and is what tests and headless tools use. :class:`RealTimeClock`
follows the monotonic wall clock and is pumped by a small polling loop in
the same thread, mirroring how the match engine steps its frames.
"""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, List, Optional, Tuple

from matchseal.config import CORE_CONFIG


class CancellationToken:
    """Handle to a single scheduled call.

    Parameters
    ----------
    due_ms : float
        Clock time in milliseconds at which the call becomes due.
    """

    __slots__ = ("due_ms", "_cancelled", "_fired")

    def __init__(self, due_ms: float) -> None:
        self.due_ms = due_ms
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has been called."""
        return self._cancelled

    @property
    def fired(self) -> bool:
        """Return ``True`` once the callback has run."""
        return self._fired

    @property
    def active(self) -> bool:
        """Return ``True`` while the call is still waiting to run."""
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        """Prevent the callback from running; a no-op after it fired."""
        self._cancelled = True


_Entry = Tuple[float, int, CancellationToken, Callable[[], None]]


class Clock:
    """Base class for millisecond clocks that run callbacks when due.

    Subclasses provide :meth:`now_ms`; the queue and dispatch live here.
    """

    def __init__(self) -> None:
        self._queue: List[_Entry] = []
        self._sequence = itertools.count()

    def now_ms(self) -> float:
        """Return the current clock time in milliseconds.

        Returns
        -------
        float
            Milliseconds since the clock's own epoch.
        """
        raise NotImplementedError

    def call_at(self, due_ms: float, callback: Callable[[], None]) -> CancellationToken:
        """Schedule ``callback`` to run once the clock reaches ``due_ms``.

        Calls due at the same time run in the order they were scheduled.

        Parameters
        ----------
        due_ms : float
            Absolute clock time in milliseconds.
        callback : Callable[[], None]
            Function to run.

        Returns
        -------
        CancellationToken
            Token that cancels this call.
        """
        token = CancellationToken(due_ms)
        heapq.heappush(self._queue, (due_ms, next(self._sequence), token, callback))
        return token

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> CancellationToken:
        """Schedule ``callback`` relative to the current time.

        Parameters
        ----------
        delay_ms : float
            Milliseconds from now; negative values mean "immediately".
        callback : Callable[[], None]
            Function to run.

        Returns
        -------
        CancellationToken
            Token that cancels this call.
        """
        return self.call_at(self.now_ms() + max(0.0, delay_ms), callback)

    @property
    def pending(self) -> int:
        """Return the number of calls that are scheduled and not cancelled."""
        return sum(1 for _, _, token, _ in self._queue if token.active)

    def next_due_ms(self) -> Optional[float]:
        """Return when the earliest live call is due.

        Returns
        -------
        float | None
            Due time in milliseconds, or ``None`` when nothing is pending.
        """
        self._discard_cancelled()
        return self._queue[0][0] if self._queue else None

    def _discard_cancelled(self) -> None:
        """Drop cancelled entries from the head of the queue."""
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

    def _pop_due(self, now_ms: float) -> Optional[Tuple[CancellationToken, Callable[[], None]]]:
        """Remove and return the earliest live call due at ``now_ms``.

        Parameters
        ----------
        now_ms : float
            Time to compare due times against.

        Returns
        -------
        tuple[CancellationToken, Callable[[], None]] | None
            The call to run, or ``None`` when nothing is due yet.
        """
        self._discard_cancelled()
        if not self._queue or self._queue[0][0] > now_ms:
            return None
        _, _, token, callback = heapq.heappop(self._queue)
        return token, callback

    @staticmethod
    def _fire(token: CancellationToken, callback: Callable[[], None]) -> None:
        """Mark ``token`` as fired and run its callback.

        Parameters
        ----------
        token : CancellationToken
            Token of the call being run.
        callback : Callable[[], None]
            Function to run.
        """
        token._fired = True
        callback()


class ManualClock(Clock):
    """Clock that only advances when :meth:`advance` is called.

    Parameters
    ----------
    start_ms : float, default=0.0
        Initial clock time.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        super().__init__()
        self._now = float(start_ms)

    def now_ms(self) -> float:
        """Return the simulated current time.

        Returns
        -------
        float
            Milliseconds since the clock's epoch.
        """
        return self._now

    def advance(self, delta_ms: float) -> int:
        """Move time forward, running every call that falls due on the way.

        Each callback sees ``now_ms()`` equal to its own due time. Calls
        scheduled by a callback run in the same advance when they are due
        before the target time.

        Parameters
        ----------
        delta_ms : float
            Milliseconds to move forward; must not be negative.

        Returns
        -------
        int
            Number of callbacks that ran.

        Raises
        ------
        ValueError
            When ``delta_ms`` is negative.
        """
        if delta_ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        target = self._now + delta_ms
        ran = 0
        while True:
            due = self._pop_due(target)
            if due is None:
                break
            token, callback = due
            self._now = max(self._now, token.due_ms)
            self._fire(token, callback)
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, limit_ms: float = float("inf")) -> int:
        """Advance straight to each pending call until none remain.

        Parameters
        ----------
        limit_ms : float, default=inf
            Do not move the clock past this absolute time.

        Returns
        -------
        int
            Number of callbacks that ran.
        """
        ran = 0
        while True:
            due_ms = self.next_due_ms()
            if due_ms is None or due_ms > limit_ms:
                return ran
            ran += self.advance(max(0.0, due_ms - self._now))


class RealTimeClock(Clock):
    """Clock following :func:`time.monotonic`, pumped from the caller's thread.

    Parameters
    ----------
    frame_sleep : float | None, optional
        Seconds to sleep between polls in :meth:`run`; defaults to
        ``CORE_CONFIG.replay.frame_sleep``.
    """

    def __init__(self, frame_sleep: Optional[float] = None) -> None:
        super().__init__()
        self._origin = time.monotonic()
        self.frame_sleep = CORE_CONFIG.replay.frame_sleep if frame_sleep is None else frame_sleep
        self.is_running = False

    def now_ms(self) -> float:
        """Return milliseconds elapsed since the clock was created.

        Returns
        -------
        float
            Monotonic milliseconds.
        """
        return (time.monotonic() - self._origin) * 1000.0

    def run_pending(self) -> int:
        """Run every call that is due right now.

        Returns
        -------
        int
            Number of callbacks that ran.
        """
        ran = 0
        while True:
            due = self._pop_due(self.now_ms())
            if due is None:
                return ran
            self._fire(*due)
            ran += 1

    def run(self, until: Optional[Callable[[], bool]] = None) -> None:
        """Poll for due calls until nothing is pending or ``until`` is true.

        Parameters
        ----------
        until : Callable[[], bool] | None, optional
            Extra stop condition checked every frame.
        """
        self.is_running = True
        try:
            while self.is_running and self.next_due_ms() is not None:
                self.run_pending()
                if until is not None and until():
                    break
                time.sleep(self.frame_sleep)
        finally:
            self.is_running = False

    def stop(self) -> None:
        """Ask a running :meth:`run` loop to return after the current frame."""
        self.is_running = False
