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
"""Reconstruct the visible match state at any point of an event log.

Seeking and playing through must agree, so both go through the same fold:
an event is visible at ``t`` when ``simulated_time_ms <= t``, and events are
taken in time order with ties kept in log order.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from matchseal.models.match import MatchEvent


@dataclass(frozen=True, slots=True)
class CursorState:
    """Aggregate state visible at a replay cursor.

    Parameters
    ----------
    home_score : int
        Home goals seen so far.
    away_score : int
        Away goals seen so far.
    events_up_to : Tuple[MatchEvent, ...]
        Every event seen so far, in delivery order.
    """

    home_score: int
    away_score: int
    events_up_to: Tuple[MatchEvent, ...]


def ordered_events(events: Iterable[MatchEvent]) -> List[MatchEvent]:
    """Sort events by time, keeping log order for equal timestamps.

    Parameters
    ----------
    events : Iterable[MatchEvent]
        Event log.

    Returns
    -------
    List[MatchEvent]
        Delivery order used by both seeking and playback.
    """
    return sorted(events, key=lambda e: e.simulated_time_ms)


def fold_events(delivered: Iterable[MatchEvent]) -> CursorState:
    """Accumulate already-delivered events into a cursor state.

    Parameters
    ----------
    delivered : Iterable[MatchEvent]
        Events in the order they were delivered.

    Returns
    -------
    CursorState
        Running score and feed after those events.
    """
    home = away = 0
    feed: List[MatchEvent] = []
    for event in delivered:
        if event.is_goal:
            if event.team == "home":
                home += 1
            else:
                away += 1
        feed.append(event)
    return CursorState(home_score=home, away_score=away, events_up_to=tuple(feed))


def state_at(events: Iterable[MatchEvent], target_ms: float) -> CursorState:
    """Return the state visible at ``target_ms`` with a single linear pass.

    Parameters
    ----------
    events : Iterable[MatchEvent]
        Event log.
    target_ms : float
        Simulated time in milliseconds.

    Returns
    -------
    CursorState
        Fold of every event at or before ``target_ms``.
    """
    return fold_events(e for e in ordered_events(events) if e.simulated_time_ms <= target_ms)


class CursorIndex:
    """Precomputed index answering repeated seeks in logarithmic time.

    Parameters
    ----------
    events : Sequence[MatchEvent]
        Event log to index.
    """

    def __init__(self, events: Sequence[MatchEvent]) -> None:
        self.events: Tuple[MatchEvent, ...] = tuple(ordered_events(events))
        self.times: List[int] = [e.simulated_time_ms for e in self.events]
        self._home: List[int] = [0]
        self._away: List[int] = [0]
        for event in self.events:
            self._home.append(self._home[-1] + (event.is_goal and event.team == "home"))
            self._away.append(self._away[-1] + (event.is_goal and event.team == "away"))

    def __len__(self) -> int:
        return len(self.events)

    @property
    def last_time_ms(self) -> int:
        """Return the timestamp of the final event, or ``0`` for an empty log."""
        return self.times[-1] if self.times else 0

    def count_at(self, target_ms: float) -> int:
        """Return how many events are visible at ``target_ms``.

        Parameters
        ----------
        target_ms : float
            Simulated time in milliseconds.

        Returns
        -------
        int
            Index of the first event still in the future.
        """
        return bisect_right(self.times, target_ms)

    def score_at(self, target_ms: float) -> Tuple[int, int]:
        """Return the running score at ``target_ms``.

        Parameters
        ----------
        target_ms : float
            Simulated time in milliseconds.

        Returns
        -------
        tuple[int, int]
            ``(home_score, away_score)``.
        """
        count = self.count_at(target_ms)
        return self._home[count], self._away[count]

    def state_at(self, target_ms: float) -> CursorState:
        """Return the state visible at ``target_ms``.

        Parameters
        ----------
        target_ms : float
            Simulated time in milliseconds.

        Returns
        -------
        CursorState
            Same value :func:`state_at` returns for the indexed log.
        """
        return self.prefix_state(self.count_at(target_ms))

    def prefix_state(self, count: int) -> CursorState:
        """Return the state after the first ``count`` events in delivery order.

        Parameters
        ----------
        count : int
            Number of delivered events.

        Returns
        -------
        CursorState
            Score and feed after those events.
        """
        return CursorState(
            home_score=self._home[count],
            away_score=self._away[count],
            events_up_to=self.events[:count],
        )
