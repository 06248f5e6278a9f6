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
"""Utilities that synthesise plausible match records for demos and tests.

These stand in for the real match simulation. Output is fully determined by
the seed so the same call always yields the same record and digest.
"""
import random
from typing import List, Optional, Tuple

from matchseal.models.match import MS_PER_MINUTE, MatchEvent, MatchRecord, count_goals, derive_outcome

FIRST_NAMES = ["John", "James", "David", "Michael", "Robert", "Carlos", "Juan", "Luis"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Rodriguez"]

# Relative frequency of open-play incidents; goals come from converted shots.
INCIDENT_WEIGHTS = {
    "pass": 10,
    "shot": 4,
    "tackle": 5,
    "foul": 2,
    "save": 2,
    "card": 1,
}
SHOT_CONVERSION = 0.25


def generate_squad(rng: random.Random, size: int = 11) -> List[str]:
    """Generate a list of distinct player names.

    Parameters
    ----------
    rng : random.Random
        Source of randomness.
    size : int
        Number of names to produce.

    Returns
    -------
    List[str]
        Names such as ``"Carlos Smith #9"``; the shirt number keeps them unique.
    """
    return [f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)} #{number}" for number in range(1, size + 1)]


def _incident(
    rng: random.Random, time_ms: int, squads: Tuple[List[str], List[str]]
) -> List[MatchEvent]:
    """Draw one open-play incident, expanding converted shots into goals.

    Parameters
    ----------
    rng : random.Random
        Source of randomness.
    time_ms : int
        Simulated time of the incident.
    squads : tuple[List[str], List[str]]
        Home and away player names.

    Returns
    -------
    List[MatchEvent]
        One event, or shot, goal and assist for a converted chance.
    """
    team = rng.choice(("home", "away"))
    players = squads[0] if team == "home" else squads[1]
    actor = rng.choice(players)
    kind = rng.choices(list(INCIDENT_WEIGHTS), weights=list(INCIDENT_WEIGHTS.values()))[0]

    if kind == "card":
        colour = "red" if rng.random() < 0.1 else "yellow"
        return [MatchEvent("card", time_ms, team, actor, f"{colour.title()} card for {actor}", {"card": colour})]
    if kind != "shot" or rng.random() >= SHOT_CONVERSION:
        return [MatchEvent(kind, time_ms, team, actor, f"{kind.title()} by {actor}")]

    assister = rng.choice([p for p in players if p != actor])
    return [
        MatchEvent("shot", time_ms, team, actor, f"Shot by {actor}"),
        MatchEvent("goal", time_ms, team, actor, f"Goal! {actor} scores", {"assist": assister}),
        MatchEvent("assist", time_ms, team, assister, f"Assist by {assister}"),
    ]


def generate_match_record(
    match_id: str,
    participant_id: str = "guest",
    home_team_name: str = "Manchester United",
    away_team_name: str = "Liverpool FC",
    duration_minutes: int = 90,
    incidents: int = 40,
    participant_side: str = "home",
    seed: Optional[int] = None,
) -> MatchRecord:
    """Generate a self-consistent match record.

    Parameters
    ----------
    match_id : str
        Identifier of the generated match.
    participant_id : str
        Identity claiming the record.
    home_team_name : str
        Name of the home side.
    away_team_name : str
        Name of the away side.
    duration_minutes : int
        Regulation length; must be positive.
    incidents : int
        Number of open-play incidents to draw.
    participant_side : str
        Side the participant played for.
    seed : Optional[int]
        Seed for reproducible output; ``None`` uses fresh entropy.

    Returns
    -------
    MatchRecord
        Record whose scores and outcome agree with its event log.

    Raises
    ------
    ValueError
        When ``duration_minutes`` is not positive.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    rng = random.Random(seed)
    squads = (generate_squad(rng), generate_squad(rng))
    duration_ms = duration_minutes * MS_PER_MINUTE
    half_ms = duration_ms // 2

    times = sorted(rng.randrange(1_000, duration_ms, 1_000) for _ in range(incidents))
    events: List[MatchEvent] = [MatchEvent("match_start", 0, "home", "referee", "Kick-off")]
    half_time_logged = False
    for time_ms in times:
        if not half_time_logged and time_ms >= half_ms:
            events.append(MatchEvent("period_end", half_ms, "home", "referee", "Half-time"))
            events.append(MatchEvent("period_start", half_ms, "away", "referee", "Second half kick-off"))
            half_time_logged = True
        events.extend(_incident(rng, time_ms, squads))
    if not half_time_logged:
        events.append(MatchEvent("period_end", half_ms, "home", "referee", "Half-time"))
        events.append(MatchEvent("period_start", half_ms, "away", "referee", "Second half kick-off"))
    events.append(MatchEvent("match_end", duration_ms, "home", "referee", "Full-time"))

    home_score, away_score = count_goals(events)
    return MatchRecord(
        id=match_id,
        home_team_name=home_team_name,
        away_team_name=away_team_name,
        duration_minutes=duration_minutes,
        home_score=home_score,
        away_score=away_score,
        events=tuple(events),
        participant_id=participant_id,
        outcome=derive_outcome(home_score, away_score, participant_side),
        participant_side=participant_side,
    )
