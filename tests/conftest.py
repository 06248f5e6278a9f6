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
"""Shared fixtures: a small, fully consistent three-goal match."""

from __future__ import annotations

from typing import Tuple

import pytest

from matchseal.models.match import MatchEvent, MatchRecord


def build_events() -> Tuple[MatchEvent, ...]:
    """Return the event log of a 2-1 home win with goals at 15', 30' and 45'.

    Returns
    -------
    Tuple[MatchEvent, ...]
        Events in insertion order.
    """
    return (
        MatchEvent("match_start", 0, "home", "referee", "Kick-off"),
        MatchEvent("goal", 900_000, "home", "Carlos Smith #9", "Goal! Carlos Smith scores"),
        MatchEvent("assist", 900_000, "home", "Luis Brown #7", "Assist by Luis Brown"),
        MatchEvent("card", 1_200_000, "away", "James Jones #4", "Yellow card", {"card": "yellow"}),
        MatchEvent("goal", 1_800_000, "away", "David Garcia #10", "Goal! David Garcia scores"),
        MatchEvent("goal", 2_700_000, "home", "Carlos Smith #9", "Goal! Carlos Smith again"),
        MatchEvent("match_end", 5_400_000, "home", "referee", "Full-time"),
    )


def build_record(participant_id: str = "alice") -> MatchRecord:
    """Return a consistent record around :func:`build_events`.

    Parameters
    ----------
    participant_id : str
        Identity claiming the record.

    Returns
    -------
    MatchRecord
        Home side wins 2-1 over 90 minutes.
    """
    return MatchRecord(
        id="match-001",
        home_team_name="Manchester United",
        away_team_name="Liverpool FC",
        duration_minutes=90,
        home_score=2,
        away_score=1,
        events=build_events(),
        participant_id=participant_id,
        outcome="win",
    )


@pytest.fixture
def events() -> Tuple[MatchEvent, ...]:
    """Provide the three-goal event log.

    Returns
    -------
    Tuple[MatchEvent, ...]
        Events in insertion order.
    """
    return build_events()


@pytest.fixture
def record() -> MatchRecord:
    """Provide the three-goal record claimed by ``alice``.

    Returns
    -------
    MatchRecord
        Consistent match record.
    """
    return build_record()
