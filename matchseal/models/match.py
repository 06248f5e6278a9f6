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
"""Match event log and match record domain models.

A completed simulation hands over a ``MatchRecord``: team names, final score,
the claiming participant and the ordered ``MatchEvent`` log. The helpers in
this module check the structural rules (types, ranges, ordering) and the
consistency rules (score equals the goal count, outcome agrees with the
score) that both the sealer and the reverifier rely on.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from matchseal.errors import ValidationError

Side = Literal["home", "away"]
Outcome = Literal["win", "loss", "draw"]

SIDES = ("home", "away")
OUTCOMES = ("win", "loss", "draw")
KNOWN_EVENT_KINDS = frozenset(
    {
        "goal",
        "assist",
        "shot",
        "tackle",
        "foul",
        "card",
        "save",
        "pass",
        "possession",
        "substitution",
        "injury",
        "period_start",
        "period_end",
        "match_start",
        "match_end",
    }
)
MS_PER_MINUTE = 60_000


@dataclass(frozen=True, slots=True)
class MatchEvent:
    """Single entry of a match event log.

    Parameters
    ----------
    kind : str
        Event category, for example ``"goal"`` or ``"card"``.
    simulated_time_ms : int
        Milliseconds of simulated match time when the event happened.
    team : Side
        Side the event is credited to (``"home"`` or ``"away"``).
    actor : str
        Identifier of the player involved.
    description : str, default=""
        Human-readable summary of what happened.
    extra : Dict[str, Any], default={}
        Kind-specific fields such as ``{"card": "yellow"}``.
    """

    kind: str
    simulated_time_ms: int
    team: Side
    actor: str
    description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_goal(self) -> bool:
        """Return ``True`` when the event is a goal."""
        return self.kind == "goal"

    @property
    def minute(self) -> int:
        """Return the match minute the event falls in."""
        return self.simulated_time_ms // MS_PER_MINUTE


@dataclass(frozen=True, slots=True)
class MatchRecord:
    """Completed match as claimed by one participant.

    Parameters
    ----------
    id : str
        Identifier of the match.
    home_team_name : str
        Display name of the home side.
    away_team_name : str
        Display name of the away side.
    duration_minutes : int
        Regulation length of the match in minutes.
    home_score : int
        Goals credited to the home side.
    away_score : int
        Goals credited to the away side.
    events : Tuple[MatchEvent, ...]
        Event log in insertion order.
    participant_id : str
        Identity of the player claiming the record.
    outcome : Outcome
        Result from the claiming participant's perspective.
    participant_side : Side, default="home"
        Side the claiming participant played for.
    """

    id: str
    home_team_name: str
    away_team_name: str
    duration_minutes: int
    home_score: int
    away_score: int
    events: Tuple[MatchEvent, ...]
    participant_id: str
    outcome: Outcome
    participant_side: Side = "home"

    @property
    def duration_ms(self) -> int:
        """Return the regulation length in milliseconds."""
        return self.duration_minutes * MS_PER_MINUTE

    def score_for(self, side: str) -> int:
        """Return the recorded score of one side.

        Parameters
        ----------
        side : str
            ``"home"`` or ``"away"``.

        Returns
        -------
        int
            The stored score field for ``side``.
        """
        return self.home_score if side == "home" else self.away_score


def _is_int(value: Any) -> bool:
    """Return whether ``value`` is an integer that is not a boolean.

    Parameters
    ----------
    value : Any
        Candidate value.

    Returns
    -------
    bool
        ``True`` for ``int`` instances other than ``True``/``False``.
    """
    return isinstance(value, int) and not isinstance(value, bool)


def count_goals(events: Sequence[MatchEvent]) -> Tuple[int, int]:
    """Count goal events per side.

    Parameters
    ----------
    events : Sequence[MatchEvent]
        Event log to scan.

    Returns
    -------
    tuple[int, int]
        ``(home_goals, away_goals)``.
    """
    home = sum(1 for e in events if e.is_goal and e.team == "home")
    away = sum(1 for e in events if e.is_goal and e.team == "away")
    return home, away


def derive_outcome(home_score: int, away_score: int, side: str = "home") -> Outcome:
    """Work out the result for the participant playing ``side``.

    Parameters
    ----------
    home_score : int
        Goals scored by the home side.
    away_score : int
        Goals scored by the away side.
    side : str, default="home"
        Side of the participant whose perspective is wanted.

    Returns
    -------
    Outcome
        ``"win"``, ``"loss"`` or ``"draw"``.
    """
    own, other = (home_score, away_score) if side == "home" else (away_score, home_score)
    if own > other:
        return "win"
    if own < other:
        return "loss"
    return "draw"


def _extra_problems(value: Any, path: str) -> List[str]:
    """Collect problems with a kind-specific ``extra`` payload.

    Parameters
    ----------
    value : Any
        Value (or nested value) taken from ``MatchEvent.extra``.
    path : str
        Dotted location of ``value`` used in problem messages.

    Returns
    -------
    List[str]
        Empty when the payload only holds canonicalizable values.
    """
    if value is None or isinstance(value, (str, bool)) or _is_int(value):
        return []
    if isinstance(value, float):
        return [f"{path} is a float; use integers or strings"]
    if isinstance(value, (list, tuple)):
        problems: List[str] = []
        for i, item in enumerate(value):
            problems.extend(_extra_problems(item, f"{path}[{i}]"))
        return problems
    if isinstance(value, dict):
        problems = []
        normalized: Dict[str, str] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                problems.append(f"{path} has a non-string key {key!r}")
                continue
            nfc = unicodedata.normalize("NFC", key)
            if nfc in normalized:
                problems.append(f"{path} keys {normalized[nfc]!r} and {key!r} collide after normalization")
            normalized.setdefault(nfc, key)
            problems.extend(_extra_problems(item, f"{path}.{key}"))
        return problems
    return [f"{path} has unsupported type {type(value).__name__}"]


def event_problems(event: MatchEvent, index: int) -> List[str]:
    """List the structural problems of one event.

    Parameters
    ----------
    event : MatchEvent
        Event to inspect.
    index : int
        Position of the event in its log, used in messages.

    Returns
    -------
    List[str]
        Human-readable problems; empty when the event is well formed.
    """
    where = f"event {index}"
    problems: List[str] = []
    if not isinstance(event.kind, str) or not event.kind:
        problems.append(f"{where}: kind must be a non-empty string")
    if not _is_int(event.simulated_time_ms):
        problems.append(f"{where}: simulated_time_ms must be an integer")
    elif event.simulated_time_ms < 0:
        problems.append(f"{where}: simulated_time_ms is negative ({event.simulated_time_ms})")
    if event.team not in SIDES:
        problems.append(f"{where}: team must be 'home' or 'away', got {event.team!r}")
    if not isinstance(event.actor, str):
        problems.append(f"{where}: actor must be a string")
    if not isinstance(event.description, str):
        problems.append(f"{where}: description must be a string")
    if not isinstance(event.extra, dict):
        problems.append(f"{where}: extra must be a mapping")
    else:
        problems.extend(_extra_problems(event.extra, f"{where}: extra"))
    return problems


def record_problems(record: MatchRecord) -> List[str]:
    """List the structural problems of a record and its event log.

    Consistency between the score and the log is not checked here; see
    :func:`consistency_problems`.

    Parameters
    ----------
    record : MatchRecord
        Record to inspect.

    Returns
    -------
    List[str]
        Human-readable problems; empty when the record is well formed.
    """
    problems: List[str] = []
    for name in ("id", "home_team_name", "away_team_name", "participant_id"):
        if not isinstance(getattr(record, name), str):
            problems.append(f"{name} must be a string")
    if isinstance(record.participant_id, str) and not record.participant_id:
        problems.append("participant_id must not be empty")
    for name in ("duration_minutes", "home_score", "away_score"):
        value = getattr(record, name)
        if not _is_int(value):
            problems.append(f"{name} must be an integer, got {value!r}")
        elif value < 0:
            problems.append(f"{name} must not be negative, got {value}")
    if record.participant_side not in SIDES:
        problems.append(f"participant_side must be 'home' or 'away', got {record.participant_side!r}")
    if record.outcome not in OUTCOMES:
        problems.append(f"outcome must be one of {', '.join(OUTCOMES)}, got {record.outcome!r}")

    if not isinstance(record.events, (list, tuple)):
        problems.append(f"events must be a list or tuple, got {type(record.events).__name__}")
        return problems

    previous: Optional[int] = None
    for index, event in enumerate(record.events):
        if not isinstance(event, MatchEvent):
            problems.append(f"event {index}: expected MatchEvent, got {type(event).__name__}")
            continue
        found = event_problems(event, index)
        problems.extend(found)
        if found or not _is_int(event.simulated_time_ms):
            continue
        if previous is not None and event.simulated_time_ms < previous:
            problems.append(
                f"event {index}: simulated_time_ms {event.simulated_time_ms} is earlier than "
                f"the previous event ({previous})"
            )
        previous = event.simulated_time_ms
    return problems


def consistency_problems(record: MatchRecord) -> List[str]:
    """Compare the stored score and outcome with the event log.

    Parameters
    ----------
    record : MatchRecord
        Structurally valid record.

    Returns
    -------
    List[str]
        Score and outcome mismatches; empty when the record is consistent.
    """
    problems: List[str] = []
    home_goals, away_goals = count_goals(record.events)
    if record.home_score != home_goals:
        problems.append(
            f"score mismatch: homeScore is {record.home_score} but the event log has {home_goals} home goal(s)"
        )
    if record.away_score != away_goals:
        problems.append(
            f"score mismatch: awayScore is {record.away_score} but the event log has {away_goals} away goal(s)"
        )
    expected = derive_outcome(record.home_score, record.away_score, record.participant_side)
    if record.outcome != expected:
        problems.append(
            f"outcome mismatch: recorded {record.outcome!r} but a {record.home_score}-{record.away_score} "
            f"score is a {expected!r} for the {record.participant_side} side"
        )
    return problems


def validate_record(record: MatchRecord) -> None:
    """Reject a structurally malformed record.

    Parameters
    ----------
    record : MatchRecord
        Record about to be canonicalized or sealed.

    Raises
    ------
    ValidationError
        When :func:`record_problems` reports anything.
    """
    if not isinstance(record, MatchRecord):
        raise ValidationError(f"expected MatchRecord, got {type(record).__name__}")
    problems = record_problems(record)
    if problems:
        summary = problems[0] if len(problems) == 1 else f"{problems[0]} (and {len(problems) - 1} more)"
        raise ValidationError(f"invalid match record {record.id!r}: {summary}", problems)
