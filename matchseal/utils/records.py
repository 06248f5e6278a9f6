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
"""Translate between JSON-compatible payloads and the core's record types.

The upstream simulation and the stores that hold match history speak plain
camelCase dictionaries. Nothing here fills in defaults for required
fields: a missing or mistyped value raises
:class:`~matchseal.errors.ValidationError`. The only optional fields are
``participantSide`` (``"home"``), ``outcome`` (derived from the score) and
per-event ``extra`` (empty).
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from matchseal.errors import ValidationError
from matchseal.models.match import MatchEvent, MatchRecord, derive_outcome, validate_record
from matchseal.models.verified import Digest, VerificationFinding, VerifiedMatchRecord


def _require(data: Dict[str, Any], key: str, kind: Union[type, Tuple[type, ...]], where: str) -> Any:
    """Fetch a required field and check its type.

    Parameters
    ----------
    data : Dict[str, Any]
        Payload being read.
    key : str
        Field name.
    kind : type | tuple[type, ...]
        Accepted type(s); booleans never pass for ``int``.
    where : str
        Location used in error messages.

    Returns
    -------
    Any
        The field value.

    Raises
    ------
    ValidationError
        When the field is missing or has the wrong type.
    """
    if key not in data:
        raise ValidationError(f"{where}: missing required field {key!r}")
    value = data[key]
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise ValidationError(f"{where}: field {key!r} must not be a boolean")
    if not isinstance(value, kind):
        raise ValidationError(f"{where}: field {key!r} has type {type(value).__name__}")
    return value


def _unhex(value: Any, where: str) -> bytes:
    """Decode a hex string.

    Parameters
    ----------
    value : Any
        Expected hex string.
    where : str
        Location used in error messages.

    Returns
    -------
    bytes
        Decoded bytes.

    Raises
    ------
    ValidationError
        When ``value`` is not valid hex.
    """
    if not isinstance(value, str):
        raise ValidationError(f"{where}: expected a hex string")
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise ValidationError(f"{where}: {value!r} is not valid hex") from None


def event_from_dict(d: Dict[str, Any], index: int = 0) -> MatchEvent:
    """Build a ``MatchEvent`` from its JSON payload.

    Parameters
    ----------
    d : Dict[str, Any]
        Mapping with ``kind``, ``simulatedTimeMs``, ``team``, ``actor``,
        ``description`` and optionally ``extra``.
    index : int
        Position of the event in its log, used in error messages.

    Returns
    -------
    MatchEvent
        The parsed event.

    Raises
    ------
    ValidationError
        When a field is missing or mistyped.
    """
    where = f"event {index}"
    if not isinstance(d, dict):
        raise ValidationError(f"{where}: expected an object, got {type(d).__name__}")
    extra = d.get("extra", {})
    if extra is None:
        extra = {}
    if not isinstance(extra, dict):
        raise ValidationError(f"{where}: field 'extra' must be an object")
    return MatchEvent(
        kind=_require(d, "kind", str, where),
        simulated_time_ms=_require(d, "simulatedTimeMs", int, where),
        team=_require(d, "team", str, where),
        actor=_require(d, "actor", str, where),
        description=_require(d, "description", str, where),
        extra=dict(extra),
    )


def record_from_dict(d: Dict[str, Any], validate: bool = True) -> MatchRecord:
    """Build a ``MatchRecord`` from the upstream JSON shape.

    Parameters
    ----------
    d : Dict[str, Any]
        Mapping in the camelCase input shape.
    validate : bool, default=True
        Run the structural checks after parsing. Loaders of already-sealed
        records pass ``False`` so that tampering is reported by the
        reverifier instead of rejected here.

    Returns
    -------
    MatchRecord
        The parsed record.

    Raises
    ------
    ValidationError
        When a field is missing, mistyped or (with ``validate``) malformed.
    """
    if not isinstance(d, dict):
        raise ValidationError(f"expected a match object, got {type(d).__name__}")
    where = f"match {d.get('id', '?')!r}"
    raw_events = _require(d, "events", list, where)
    home_score = _require(d, "homeScore", int, where)
    away_score = _require(d, "awayScore", int, where)
    side = d.get("participantSide", "home")
    outcome = d.get("outcome")
    if outcome is None:
        outcome = derive_outcome(home_score, away_score, side)

    record = MatchRecord(
        id=_require(d, "id", str, where),
        home_team_name=_require(d, "homeTeamName", str, where),
        away_team_name=_require(d, "awayTeamName", str, where),
        duration_minutes=_require(d, "durationMinutes", int, where),
        home_score=home_score,
        away_score=away_score,
        events=tuple(event_from_dict(e, i) for i, e in enumerate(raw_events)),
        participant_id=_require(d, "participantId", str, where),
        outcome=outcome,
        participant_side=side,
    )
    if validate:
        validate_record(record)
    return record


def record_to_dict(record: MatchRecord) -> Dict[str, Any]:
    """Project a record back into the camelCase JSON shape.

    Parameters
    ----------
    record : MatchRecord
        Record to project.

    Returns
    -------
    Dict[str, Any]
        JSON-compatible mapping.
    """
    events = []
    for e in record.events:
        item: Dict[str, Any] = {
            "kind": e.kind,
            "simulatedTimeMs": e.simulated_time_ms,
            "team": e.team,
            "actor": e.actor,
            "description": e.description,
        }
        if e.extra:
            item["extra"] = dict(e.extra)
        events.append(item)
    return {
        "id": record.id,
        "homeTeamName": record.home_team_name,
        "awayTeamName": record.away_team_name,
        "durationMinutes": record.duration_minutes,
        "homeScore": record.home_score,
        "awayScore": record.away_score,
        "events": events,
        "participantId": record.participant_id,
        "participantSide": record.participant_side,
        "outcome": record.outcome,
    }


def verified_to_dict(verified: VerifiedMatchRecord) -> Dict[str, Any]:
    """Project a verified record into the verification output shape.

    Parameters
    ----------
    verified : VerifiedMatchRecord
        Sealed record.

    Returns
    -------
    Dict[str, Any]
        Record fields plus ``digest``, ``seal``, ``proof`` and
        ``integrityVerified`` with bytes rendered as hex.
    """
    payload = record_to_dict(verified.record)
    payload["digest"] = {
        "value": verified.digest.hex,
        "algorithm": verified.digest.algorithm,
        "sections": {name: value.hex() for name, value in verified.digest.sections.items()},
    }
    payload["seal"] = verified.seal.hex()
    payload["proof"] = verified.proof
    payload["integrityVerified"] = verified.integrity_verified
    return payload


def verified_from_dict(d: Dict[str, Any]) -> VerifiedMatchRecord:
    """Rebuild a verified record from its stored payload.

    The embedded record is parsed without structural validation so that a
    tampered record reaches the reverifier.

    Parameters
    ----------
    d : Dict[str, Any]
        Mapping produced by :func:`verified_to_dict`.

    Returns
    -------
    VerifiedMatchRecord
        The rebuilt value.

    Raises
    ------
    ValidationError
        When the verification fields are missing or mistyped.
    """
    record = record_from_dict(d, validate=False)
    where = f"match {record.id!r}"
    digest_data = _require(d, "digest", dict, where)
    sections = digest_data.get("sections") or {}
    if not isinstance(sections, dict):
        raise ValidationError(f"{where}: digest sections must be an object")
    record_digest = Digest(
        value=_unhex(_require(digest_data, "value", str, where), f"{where}: digest"),
        algorithm=_require(digest_data, "algorithm", str, where),
        sections={name: _unhex(value, f"{where}: section {name}") for name, value in sections.items()},
    )
    return VerifiedMatchRecord(
        record=record,
        digest=record_digest,
        seal=_unhex(_require(d, "seal", str, where), f"{where}: seal"),
        proof=_require(d, "proof", str, where),
        integrity_verified=_require(d, "integrityVerified", bool, where),
    )


def finding_to_dict(finding: VerificationFinding) -> Dict[str, Any]:
    """Project a reverification finding into its output shape.

    Parameters
    ----------
    finding : VerificationFinding
        Finding to project.

    Returns
    -------
    Dict[str, Any]
        ``{"stillValid": bool, "details": [str, ...]}``.
    """
    return {"stillValid": finding.still_valid, "details": list(finding.details)}


def _load_payloads(path: str) -> List[Dict[str, Any]]:
    """Read a JSON file holding one match, a list, or ``{"matches": [...]}``.

    Parameters
    ----------
    path : str
        Filesystem path of the JSON document.

    Returns
    -------
    List[Dict[str, Any]]
        Match payloads in file order.

    Raises
    ------
    FileNotFoundError
        Raised when ``path`` does not exist.
    ValidationError
        Raised when the document has none of the accepted layouts.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Match file not found: {path}")

    with p.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    if isinstance(data, dict) and "matches" in data:
        data = data["matches"]
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data
    raise ValidationError(f"{path}: expected a match object or a list of matches")


def load_records_from_json(path: str) -> List[MatchRecord]:
    """Load and validate match records from a JSON file.

    Parameters
    ----------
    path : str
        Filesystem path of the JSON document.

    Returns
    -------
    List[MatchRecord]
        Records in file order.
    """
    return [record_from_dict(item) for item in _load_payloads(path)]


def load_verified_from_json(path: str) -> List[VerifiedMatchRecord]:
    """Load previously sealed records from a JSON file.

    Parameters
    ----------
    path : str
        Filesystem path of the JSON document.

    Returns
    -------
    List[VerifiedMatchRecord]
        Verified records in file order.
    """
    return [verified_from_dict(item) for item in _load_payloads(path)]
