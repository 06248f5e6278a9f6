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
"""Re-check a verified record against its stored digest, seal and proof."""

from __future__ import annotations

import dataclasses
import hmac
from typing import TYPE_CHECKING, List, Optional

from matchseal.config import CORE_CONFIG, IntegrityConfig
from matchseal.integrity.canonical import SECTION_NAMES
from matchseal.integrity.hasher import digest_record
from matchseal.integrity.sealer import verify_proof, verify_seal
from matchseal.models.match import MatchRecord, consistency_problems, record_problems
from matchseal.models.verified import Digest, VerificationFinding, VerifiedMatchRecord

if TYPE_CHECKING:
    from matchseal.utils.debug import MatchDebugger

_SECTION_MESSAGES = {
    "header": "header changed: match id, team names or duration differ from the sealed record",
    "result": "result changed: score or outcome differs from the sealed record",
    "participant": "participant changed: record is attributed to a different participant or side",
    "events": "event log changed: events were added, removed, reordered or edited",
}


def _digest_findings(record: MatchRecord, stored: Digest, config: IntegrityConfig) -> List[str]:
    """Recompute the digest of ``record`` and describe any difference.

    Parameters
    ----------
    record : MatchRecord
        Structurally valid record in its current state.
    stored : Digest
        Digest captured when the record was sealed.
    config : IntegrityConfig
        Settings used for the recomputation; the stored algorithm wins.

    Returns
    -------
    List[str]
        Section changes followed by a digest mismatch line, or nothing.
    """
    try:
        current = digest_record(record, dataclasses.replace(config, hash_algorithm=stored.algorithm))
    except ValueError as exc:
        return [f"digest mismatch: cannot recompute digest ({exc})"]

    if hmac.compare_digest(current.value, stored.value):
        return []
    findings = [
        _SECTION_MESSAGES[name]
        for name in SECTION_NAMES
        if name in stored.sections and stored.sections[name] != current.sections.get(name)
    ]
    findings.append(f"digest mismatch: stored {stored.hex[:16]}..., recomputed {current.hex[:16]}...")
    return findings


def reverify(
    verified: VerifiedMatchRecord,
    *,
    key: Optional[bytes] = None,
    config: Optional[IntegrityConfig] = None,
    debugger: Optional["MatchDebugger"] = None,
) -> VerificationFinding:
    """Recompute digest, seal and proof from a record's current fields.

    Checks run from the most to the least specific so the first details
    explain *what* changed: structural problems, score and outcome against
    the event log, the section that changed, the whole digest, the seal
    (which also catches identity substitution) and finally the proof.

    Parameters
    ----------
    verified : VerifiedMatchRecord
        Previously sealed record, possibly edited since.
    key : bytes | None, optional
        HMAC key the record was sealed with; defaults to the configured key.
    config : IntegrityConfig | None, optional
        Hashing and proof settings; defaults to ``CORE_CONFIG.integrity``.
    debugger : MatchDebugger | None, optional
        Receives a ``REVERIFY`` line with the finding.

    Returns
    -------
    VerificationFinding
        ``still_valid`` is ``True`` only when no detail was recorded. The
        input is never modified and nothing is raised for tampered records.
    """
    cfg = config or CORE_CONFIG.integrity
    record = verified.record
    details: List[str] = []

    if not isinstance(record, MatchRecord):
        details.append(f"malformed record: expected MatchRecord, got {type(record).__name__}")
    else:
        structural = record_problems(record)
        if structural:
            details.extend(f"malformed record: {problem}" for problem in structural)
            details.append("digest mismatch: record can no longer be canonicalized")
        else:
            details.extend(consistency_problems(record))
            details.extend(_digest_findings(record, verified.digest, cfg))

        participant = record.participant_id if isinstance(record.participant_id, str) else ""
        if not verify_seal(verified.seal, verified.digest, participant, key=key, config=cfg):
            details.append(f"seal mismatch: seal does not bind the stored digest to participant {participant!r}")
        if not structural and not verify_proof(verified.proof, verified, cfg):
            details.append(f"proof mismatch: stored proof {verified.proof!r} does not match the record")
        if not verified.integrity_verified and not details:
            details.append("verification flag mismatch: record is consistent but marked as unverified")

    finding = VerificationFinding(still_valid=not details, details=details)
    if debugger:
        debugger.log_reverification(str(getattr(record, "id", "?")), finding.still_valid, finding.details)
    return finding
