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
"""Per-player statistics folded from a match event log.

Stats use the same visibility rule as the score: an event counts at ``t``
when ``simulated_time_ms <= t``. Events credited to the match itself
(kick-off, period changes, full-time) never create a player entry.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from matchseal.models.match import MatchEvent, Side
from matchseal.replay.cursor import ordered_events

MATCH_CONTROL_KINDS = frozenset({"match_start", "match_end", "period_start", "period_end"})

# Event kind to the PlayerStats counter it bumps.
_COUNTERS = {
    "goal": "goals",
    "assist": "assists",
    "shot": "shots",
    "tackle": "tackles",
    "pass": "passes",
    "foul": "fouls",
}
CARD_COLOURS = ("yellow", "red")


@dataclass(frozen=True, slots=True)
class PlayerStats:
    """Running totals for one player.

    Parameters
    ----------
    actor : str
        Player name as it appears in the event log.
    team : Side
        Side of the player's first event.
    goals : int
        Goals scored.
    assists : int
        Assists made.
    shots : int
        Shots taken.
    tackles : int
        Tackles made.
    passes : int
        Passes made.
    fouls : int
        Fouls committed.
    card : str | None
        Colour of the most recent card, if any.
    """

    actor: str
    team: Side
    goals: int = 0
    assists: int = 0
    shots: int = 0
    tackles: int = 0
    passes: int = 0
    fouls: int = 0
    card: Optional[str] = None

    @property
    def involvement(self) -> int:
        """Return goals plus assists, used to rank performers."""
        return self.goals + self.assists

    def summary(self) -> str:
        """Return a compact line such as ``"2G 1A 3S 0T"``.

        Returns
        -------
        str
            Goals, assists, shots and tackles.
        """
        return f"{self.goals}G {self.assists}A {self.shots}S {self.tackles}T"


@dataclass(frozen=True, slots=True)
class MatchStats:
    """Match-wide totals and leaders.

    Parameters
    ----------
    total_events : int
        Number of events folded.
    total_goals : int
        Goals credited to players.
    total_assists : int
        Assists credited to players.
    total_tackles : int
        Tackles credited to players.
    total_passes : int
        Passes credited to players.
    top_scorer : tuple[str, int] | None
        Leading scorer and goal count; ``None`` before the first goal.
    top_assister : tuple[str, int] | None
        Leading assister and assist count; ``None`` before the first assist.
    players : Tuple[PlayerStats, ...]
        Every player seen, in order of first appearance.
    """

    total_events: int
    total_goals: int
    total_assists: int
    total_tackles: int
    total_passes: int
    top_scorer: Optional[Tuple[str, int]]
    top_assister: Optional[Tuple[str, int]]
    players: Tuple[PlayerStats, ...]


def player_stats(delivered: Iterable[MatchEvent]) -> Dict[str, PlayerStats]:
    """Accumulate per-player totals over already-delivered events.

    Parameters
    ----------
    delivered : Iterable[MatchEvent]
        Events in the order they were delivered.

    Returns
    -------
    Dict[str, PlayerStats]
        Stats keyed by actor, in order of first appearance.
    """
    table: Dict[str, PlayerStats] = {}
    for event in delivered:
        if not event.actor or event.kind in MATCH_CONTROL_KINDS:
            continue
        stats = table.get(event.actor) or PlayerStats(actor=event.actor, team=event.team)
        counter = _COUNTERS.get(event.kind)
        if counter is not None:
            stats = replace(stats, **{counter: getattr(stats, counter) + 1})
        elif event.kind == "card" and event.extra.get("card") in CARD_COLOURS:
            stats = replace(stats, card=event.extra["card"])
        table[event.actor] = stats
    return table


def _leader(players: Iterable[PlayerStats], counter: str) -> Optional[Tuple[str, int]]:
    """Find the first player with the strictly highest non-zero count.

    Parameters
    ----------
    players : Iterable[PlayerStats]
        Players in order of first appearance.
    counter : str
        ``PlayerStats`` field to compare.

    Returns
    -------
    tuple[str, int] | None
        Name and count of the leader, or ``None`` when every count is zero.
    """
    best: Optional[Tuple[str, int]] = None
    for stats in players:
        value = getattr(stats, counter)
        if value > (best[1] if best else 0):
            best = (stats.actor, value)
    return best


def match_stats(delivered: Iterable[MatchEvent]) -> MatchStats:
    """Summarise already-delivered events into match-wide stats.

    Ties for top scorer or top assister go to whoever reached the count in
    an earlier-appearing entry.

    Parameters
    ----------
    delivered : Iterable[MatchEvent]
        Events in the order they were delivered.

    Returns
    -------
    MatchStats
        Totals, leaders and the per-player table.
    """
    events = list(delivered)
    players = tuple(player_stats(events).values())
    return MatchStats(
        total_events=len(events),
        total_goals=sum(p.goals for p in players),
        total_assists=sum(p.assists for p in players),
        total_tackles=sum(p.tackles for p in players),
        total_passes=sum(p.passes for p in players),
        top_scorer=_leader(players, "goals"),
        top_assister=_leader(players, "assists"),
        players=players,
    )


def stats_at(events: Iterable[MatchEvent], target_ms: float) -> MatchStats:
    """Return the stats visible at ``target_ms``.

    Parameters
    ----------
    events : Iterable[MatchEvent]
        Event log.
    target_ms : float
        Simulated time in milliseconds.

    Returns
    -------
    MatchStats
        Stats over every event at or before ``target_ms``.
    """
    return match_stats(e for e in ordered_events(events) if e.simulated_time_ms <= target_ms)


def top_performers(stats: MatchStats, limit: int = 5) -> List[PlayerStats]:
    """Rank players by goals plus assists.

    Parameters
    ----------
    stats : MatchStats
        Stats to rank.
    limit : int, default=5
        Maximum number of players returned.

    Returns
    -------
    List[PlayerStats]
        Highest involvement first; equal players keep appearance order.
    """
    return sorted(stats.players, key=lambda p: -p.involvement)[:limit]
