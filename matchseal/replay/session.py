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
"""Playback state machine over a match event log.

A session walks a cursor through simulated match time and hands every event
to a callback once its time has elapsed on the session's clock, scaled by
the speed multiplier. Only one delivery is ever scheduled at a time. Pause,
seek, speed changes and stop cancel that delivery's token and bump a
generation counter, so a stale timer (or a callback that changes the
session while it is being delivered) can never fire an event twice.
"""

from __future__ import annotations

import math
import weakref
from typing import TYPE_CHECKING, Callable, Literal, Optional, Sequence, Tuple

from matchseal.config import CORE_CONFIG, ReplayConfig
from matchseal.errors import SchedulerMisuseError, ValidationError
from matchseal.models.match import MatchEvent, MatchRecord, event_problems
from matchseal.replay.clock import CancellationToken, Clock
from matchseal.replay.cursor import CursorIndex, CursorState
from matchseal.replay.stats import MatchStats, match_stats

if TYPE_CHECKING:
    from matchseal.utils.debug import MatchDebugger

RunState = Literal["idle", "playing", "paused"]
EventCallback = Callable[[MatchEvent], None]


def _weak_delivery(session: "ReplaySession", generation: int) -> Callable[[], None]:
    """Build a clock callback that does not keep ``session`` alive.

    Parameters
    ----------
    session : ReplaySession
        Session to deliver to.
    generation : int
        Scheduling generation the callback belongs to.

    Returns
    -------
    Callable[[], None]
        Callback that delivers due events, or does nothing once the session
        has been garbage collected.
    """
    ref = weakref.ref(session)

    def fire() -> None:
        target = ref()
        if target is not None:
            target._deliver_due(generation)

    return fire


def _is_number(value: object) -> bool:
    """Return whether ``value`` is a finite real number other than a bool.

    Parameters
    ----------
    value : object
        Candidate argument.

    Returns
    -------
    bool
        ``True`` for finite ``int`` or ``float`` values.
    """
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class ReplaySession:
    """Owned, single-threaded playback of one event log.

    States are ``"idle"``, ``"playing"`` and ``"paused"``. Seeking is allowed
    in every state. The session never replays skipped events one by one;
    callers read the aggregate with :meth:`state_at` instead.

    Parameters
    ----------
    events : Sequence[MatchEvent]
        Event log to replay.
    duration_ms : int
        Length of the match; raised to the last event time when shorter so
        stoppage-time events remain reachable.
    clock : Clock
        Clock the deliveries are scheduled on.
    speed : float | None, optional
        Initial speed multiplier; defaults to ``config.default_speed``.
    config : ReplayConfig | None, optional
        Speed limits; defaults to ``CORE_CONFIG.replay``.
    debugger : MatchDebugger | None, optional
        Receives ``REPLAY_STATE`` and ``REPLAY_EVENT`` lines.

    Raises
    ------
    ValidationError
        When an event or the duration is malformed.
    SchedulerMisuseError
        When ``speed`` is not a legal multiplier.
    """

    def __init__(
        self,
        events: Sequence[MatchEvent],
        duration_ms: int,
        clock: Clock,
        speed: Optional[float] = None,
        config: Optional[ReplayConfig] = None,
        debugger: Optional["MatchDebugger"] = None,
    ) -> None:
        for index, event in enumerate(events):
            if not isinstance(event, MatchEvent):
                raise ValidationError(f"event {index}: expected MatchEvent, got {type(event).__name__}")
            problems = event_problems(event, index)
            if problems:
                raise ValidationError(problems[0], problems)
        if not _is_number(duration_ms) or duration_ms < 0:
            raise ValidationError(f"duration_ms must be a non-negative number, got {duration_ms!r}")

        self._config = config or CORE_CONFIG.replay
        self._index = CursorIndex(events)
        self.duration_ms = max(duration_ms, self._index.last_time_ms)
        self._clock = clock
        self._speed = self._checked_speed(self._config.default_speed if speed is None else speed, "__init__")
        self.debugger = debugger

        self._state: RunState = "idle"
        self._cursor_ms: float = 0
        self._next_index = 0
        self._finished = False
        self._anchor_wall_ms = 0.0
        self._anchor_ms: float = 0.0
        self._pending: Optional[CancellationToken] = None
        self._generation = 0
        self._on_event: Optional[EventCallback] = None
        self._on_complete: Optional[Callable[[], None]] = None

    @classmethod
    def from_record(
        cls,
        record: MatchRecord,
        clock: Clock,
        speed: Optional[float] = None,
        config: Optional[ReplayConfig] = None,
        debugger: Optional["MatchDebugger"] = None,
    ) -> "ReplaySession":
        """Create a session over a record's event log and duration.

        Parameters
        ----------
        record : MatchRecord
            Match to replay.
        clock : Clock
            Clock the deliveries are scheduled on.
        speed : float | None, optional
            Initial speed multiplier.
        config : ReplayConfig | None, optional
            Speed limits; defaults to ``CORE_CONFIG.replay``.
        debugger : MatchDebugger | None, optional
            Receives replay log lines.

        Returns
        -------
        ReplaySession
            Idle session with the cursor at zero.
        """
        return cls(record.events, record.duration_ms, clock, speed=speed, config=config, debugger=debugger)

    def __del__(self) -> None:
        pending = getattr(self, "_pending", None)
        if pending is not None:
            pending.cancel()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def run_state(self) -> RunState:
        """Return ``"idle"``, ``"playing"`` or ``"paused"``."""
        return self._state

    @property
    def speed(self) -> float:
        """Return the current speed multiplier."""
        return self._speed

    @property
    def cursor_ms(self) -> float:
        """Return the time of the last delivered event or seek target."""
        return self._cursor_ms

    @property
    def elapsed_ms(self) -> float:
        """Return the live playback position, between deliveries included."""
        if self._state != "playing":
            return self._cursor_ms
        live = self._anchor_ms + (self._clock.now_ms() - self._anchor_wall_ms) * self._speed
        return min(float(self.duration_ms), max(float(self._cursor_ms), live))

    @property
    def finished(self) -> bool:
        """Return ``True`` once playback has delivered the final event."""
        return self._finished

    @property
    def events(self) -> Tuple[MatchEvent, ...]:
        """Return the log in delivery order."""
        return self._index.events

    def state_at(self, target_ms: float) -> CursorState:
        """Return the aggregate state at ``target_ms`` without moving the cursor.

        Parameters
        ----------
        target_ms : float
            Simulated time; clamped into ``[0, duration_ms]``.

        Returns
        -------
        CursorState
            Score and event feed visible at that time.
        """
        return self._index.state_at(self._clamped(target_ms, "state_at"))

    def current_state(self) -> CursorState:
        """Return the aggregate of every event delivered or skipped so far.

        Returns
        -------
        CursorState
            Score and event feed at the cursor.
        """
        return self._index.prefix_state(self._next_index)

    def stats_at(self, target_ms: float) -> MatchStats:
        """Return player stats at ``target_ms`` without moving the cursor.

        Parameters
        ----------
        target_ms : float
            Simulated time; clamped into ``[0, duration_ms]``.

        Returns
        -------
        MatchStats
            Stats over every event visible at that time.
        """
        count = self._index.count_at(self._clamped(target_ms, "stats_at"))
        return match_stats(self._index.events[:count])

    def current_stats(self) -> MatchStats:
        """Return player stats over every event delivered or skipped so far.

        Returns
        -------
        MatchStats
            Stats at the cursor.
        """
        return match_stats(self._index.events[: self._next_index])

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------
    def play(self, on_event: Optional[EventCallback] = None, on_complete: Optional[Callable[[], None]] = None) -> None:
        """Start or resume delivering events from the cursor.

        A no-op while already playing. An exhausted log completes at once.

        Parameters
        ----------
        on_event : Callable[[MatchEvent], None] | None, optional
            Called with each event as its time elapses.
        on_complete : Callable[[], None] | None, optional
            Called once the last event has been delivered.
        """
        if self._state == "playing":
            return
        self._on_event = on_event
        self._on_complete = on_complete
        self._set_state("playing", "play")
        self._reschedule(self._cursor_ms)

    def pause(self) -> None:
        """Stop delivering events, keeping the cursor where it is."""
        if self._state != "playing":
            return
        self._cancel_pending()
        self._set_state("paused", "pause")

    def stop(self) -> None:
        """Cancel playback and rewind the cursor to zero."""
        self._cancel_pending()
        self._cursor_ms = 0
        self._next_index = 0
        self._finished = False
        self._on_event = None
        self._on_complete = None
        self._set_state("idle", "stop")

    def close(self) -> None:
        """Release the session; equivalent to :meth:`stop`."""
        self.stop()

    def set_speed(self, multiplier: float) -> None:
        """Change the speed multiplier in any state.

        While playing, the pending delivery is cancelled and the remaining
        events are rescheduled from the live position under the new speed,
        so the next event moves in time but is neither dropped nor repeated.

        Parameters
        ----------
        multiplier : float
            New multiplier; must be finite, above zero and at most
            ``config.max_speed``.

        Raises
        ------
        SchedulerMisuseError
            When ``multiplier`` is not a legal speed.
        """
        multiplier = self._checked_speed(multiplier, "set_speed")
        if self._state != "playing":
            self._speed = multiplier
            return
        live = self.elapsed_ms
        self._cancel_pending()
        self._speed = multiplier
        self._reschedule(live)

    def skip_to(self, target_ms: float) -> CursorState:
        """Move the cursor to ``target_ms`` in any state.

        Events at or before the target count as delivered but are not passed
        to the callback. While playing, delivery resumes from the target.

        Parameters
        ----------
        target_ms : float
            Simulated time; clamped into ``[0, duration_ms]``.

        Returns
        -------
        CursorState
            Aggregate state at the new cursor.

        Raises
        ------
        SchedulerMisuseError
            When ``target_ms`` is not a finite number.
        """
        target = self._clamped(target_ms, "skip_to")
        self._cancel_pending()
        self._cursor_ms = target
        self._next_index = self._index.count_at(target)
        self._finished = False
        if self.debugger:
            self.debugger.log_replay_state(self._state, self._state, target, "skip_to")
        if self._state == "playing":
            self._reschedule(target)
        return self._index.prefix_state(self._next_index)

    # ------------------------------------------------------------------
    # Scheduling internals
    # ------------------------------------------------------------------
    def _checked_speed(self, multiplier: float, operation: str) -> float:
        """Validate a speed multiplier.

        Parameters
        ----------
        multiplier : float
            Requested multiplier.
        operation : str
            Name of the calling control, reported on error.

        Returns
        -------
        float
            The multiplier as a float.

        Raises
        ------
        SchedulerMisuseError
            When the multiplier is not finite, not positive or too large.
        """
        if not _is_number(multiplier):
            raise SchedulerMisuseError(f"speed multiplier must be a finite number, got {multiplier!r}", operation)
        if multiplier <= 0:
            raise SchedulerMisuseError(f"speed multiplier must be greater than zero, got {multiplier}", operation)
        if multiplier > self._config.max_speed:
            raise SchedulerMisuseError(
                f"speed multiplier {multiplier} exceeds the maximum of {self._config.max_speed}", operation
            )
        return float(multiplier)

    def _clamped(self, target_ms: float, operation: str) -> float:
        """Validate a cursor target and clamp it into the match.

        Parameters
        ----------
        target_ms : float
            Requested simulated time.
        operation : str
            Name of the calling control, reported on error.

        Returns
        -------
        float
            ``target_ms`` limited to ``[0, duration_ms]``.

        Raises
        ------
        SchedulerMisuseError
            When ``target_ms`` is not a finite number.
        """
        if not _is_number(target_ms):
            raise SchedulerMisuseError(f"target must be a finite number of milliseconds, got {target_ms!r}", operation)
        return min(max(target_ms, 0), self.duration_ms)

    def _set_state(self, state: RunState, reason: str) -> None:
        """Switch run state and log the transition.

        Parameters
        ----------
        state : RunState
            New run state.
        reason : str
            Control or condition that caused the change.
        """
        previous, self._state = self._state, state
        if self.debugger:
            self.debugger.log_replay_state(previous, state, self._cursor_ms, reason)

    def _cancel_pending(self) -> None:
        """Invalidate the pending delivery and every callback in flight."""
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _reschedule(self, position_ms: float) -> None:
        """Anchor simulated time to the clock and schedule the next delivery.

        Parameters
        ----------
        position_ms : float
            Simulated time that corresponds to the clock's current time.
        """
        self._anchor_wall_ms = self._clock.now_ms()
        self._anchor_ms = position_ms
        self._schedule_next()

    def _schedule_next(self) -> None:
        """Schedule the next undelivered event, or complete playback."""
        if self._next_index >= len(self._index):
            self._complete()
            return
        event_ms = self._index.times[self._next_index]
        due = self._anchor_wall_ms + max(0.0, event_ms - self._anchor_ms) / self._speed
        self._pending = self._clock.call_at(due, _weak_delivery(self, self._generation))

    def _deliver_due(self, generation: int) -> None:
        """Deliver the scheduled event and any events sharing its timestamp.

        Parameters
        ----------
        generation : int
            Generation the firing timer was scheduled under; stale timers
            are ignored.
        """
        if generation != self._generation or self._state != "playing":
            return
        self._pending = None
        due_ms = self._index.times[self._next_index]
        while self._next_index < len(self._index) and self._index.times[self._next_index] <= due_ms:
            event = self._index.events[self._next_index]
            self._next_index += 1
            self._cursor_ms = event.simulated_time_ms
            if self.debugger:
                self.debugger.log_replay_event(event.simulated_time_ms, event.kind, event.team, event.description)
            if self._on_event is not None:
                try:
                    self._on_event(event)
                except Exception:
                    if generation == self._generation:
                        self._cancel_pending()
                        self._set_state("paused", "callback error")
                    raise
            if generation != self._generation:
                # The callback paused, stopped, seeked or changed speed.
                return
        self._schedule_next()

    def _complete(self) -> None:
        """Finish playback after the final delivery."""
        self._pending = None
        self._finished = True
        on_complete = self._on_complete
        self._set_state("idle", "complete")
        if on_complete is not None:
            on_complete()
