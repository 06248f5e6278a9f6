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
"""Deterministic byte encoding of match records.

The encoding is compact JSON built from arrays in a fixed field order, so the
output never depends on how a record was assembled in memory. Strings are
NFC-normalised and encoded as UTF-8, timestamps and scores are integers and
``extra`` mappings are written with sorted keys. The record is split into
four sections (header, result, participant and events) that can be hashed
on their own to tell which part of a record changed.
"""

from __future__ import annotations

import json
import unicodedata
from typing import Any, Dict, List, Optional

from matchseal.config import CORE_CONFIG, IntegrityConfig
from matchseal.models.match import MatchEvent, MatchRecord, validate_record

SECTION_NAMES = ("header", "result", "participant", "events")


def _text(value: str) -> str:
    """Return ``value`` in Unicode normal form C.

    Parameters
    ----------
    value : str
        String taken from a record.

    Returns
    -------
    str
        The NFC form of ``value``.
    """
    return unicodedata.normalize("NFC", value)


def _plain(value: Any) -> Any:
    """Convert an ``extra`` payload into JSON-ready builtins.

    Parameters
    ----------
    value : Any
        Validated value from ``MatchEvent.extra``.

    Returns
    -------
    Any
        Equivalent structure with normalised strings and lists for tuples.
    """
    if isinstance(value, str):
        return _text(value)
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {_text(k): _plain(v) for k, v in value.items()}
    return value


def _dumps(payload: Any) -> bytes:
    """Serialise ``payload`` as compact, key-sorted UTF-8 JSON.

    Parameters
    ----------
    payload : Any
        JSON-compatible structure.

    Returns
    -------
    bytes
        The canonical byte form.
    """
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return text.encode("utf-8")


def _event_fields(event: MatchEvent) -> List[Any]:
    """Lay out one event in canonical field order.

    Parameters
    ----------
    event : MatchEvent
        Validated event.

    Returns
    -------
    List[Any]
        ``[kind, simulated_time_ms, team, actor, description, extra]``.
    """
    return [
        _text(event.kind),
        event.simulated_time_ms,
        event.team,
        _text(event.actor),
        _text(event.description),
        _plain(event.extra),
    ]


def _section_payloads(record: MatchRecord) -> Dict[str, List[Any]]:
    """Build the JSON payload of every section.

    Parameters
    ----------
    record : MatchRecord
        Validated record.

    Returns
    -------
    Dict[str, List[Any]]
        Section name to payload, in ``SECTION_NAMES`` order.
    """
    return {
        "header": [
            _text(record.id),
            _text(record.home_team_name),
            _text(record.away_team_name),
            record.duration_minutes,
        ],
        "result": [record.home_score, record.away_score, record.outcome],
        "participant": [_text(record.participant_id), record.participant_side],
        "events": [_event_fields(event) for event in record.events],
    }


def canonical_sections(record: MatchRecord, config: Optional[IntegrityConfig] = None) -> Dict[str, bytes]:
    """Encode each section of a record separately.

    Parameters
    ----------
    record : MatchRecord
        Record to encode.
    config : IntegrityConfig | None, optional
        Supplies the format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    Dict[str, bytes]
        Canonical bytes keyed by section name. Each section is prefixed with
        the format tag and its own name.

    Raises
    ------
    ValidationError
        When the record is structurally malformed.
    """
    cfg = config or CORE_CONFIG.integrity
    validate_record(record)
    return {
        name: _dumps([cfg.canonical_format, name, payload])
        for name, payload in _section_payloads(record).items()
    }


def canonical_outcome(record: MatchRecord, config: Optional[IntegrityConfig] = None) -> bytes:
    """Encode only what decides a match outcome.

    The id, the participant and every non-goal event are left out, so two
    records of the same result between the same sides encode identically.

    Parameters
    ----------
    record : MatchRecord
        Record to encode.
    config : IntegrityConfig | None, optional
        Supplies the format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bytes
        UTF-8 JSON array ``[format, "outcome", payload]``.

    Raises
    ------
    ValidationError
        When the record is structurally malformed.
    """
    cfg = config or CORE_CONFIG.integrity
    validate_record(record)
    scorers = [
        [event.simulated_time_ms, event.team, _text(event.actor)]
        for event in sorted(record.events, key=lambda e: e.simulated_time_ms)
        if event.is_goal
    ]
    payload = [
        _text(record.home_team_name),
        _text(record.away_team_name),
        record.duration_minutes,
        record.home_score,
        record.away_score,
        scorers,
    ]
    return _dumps([cfg.canonical_format, "outcome", payload])


def canonicalize(record: MatchRecord, config: Optional[IntegrityConfig] = None) -> bytes:
    """Encode a whole record into its canonical byte sequence.

    Two records with equal field values always encode identically; changing
    any score, event, participant field, team name, id or duration changes
    the output.

    Parameters
    ----------
    record : MatchRecord
        Record to encode.
    config : IntegrityConfig | None, optional
        Supplies the format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bytes
        UTF-8 JSON array ``[format, [name, payload], ...]``.

    Raises
    ------
    ValidationError
        When the record is structurally malformed.
    """
    cfg = config or CORE_CONFIG.integrity
    validate_record(record)
    payloads = _section_payloads(record)
    return _dumps([cfg.canonical_format] + [[name, payloads[name]] for name in SECTION_NAMES])
