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
"""Seal digests to participants and turn verified records into proofs.

A plain digest proves that a record has not changed, but anyone can hash a
record. The seal is an HMAC over the digest *and* the claiming participant,
so a record re-attributed to somebody else fails verification even though
its event log and score are untouched.
"""

from __future__ import annotations

import hashlib
import hmac
import unicodedata
import zlib
from typing import TYPE_CHECKING, Iterable, Optional

from matchseal.config import CORE_CONFIG, IntegrityConfig
from matchseal.errors import ValidationError
from matchseal.integrity.hasher import digest_record
from matchseal.models.match import MatchRecord, consistency_problems, validate_record
from matchseal.models.verified import Digest, VerifiedMatchRecord

if TYPE_CHECKING:
    from matchseal.utils.debug import MatchDebugger

PROOF_PREFIX = "PROOF"
_PROOF_TAGS = {"sha256": "SHA2", "sha3_256": "SHA3", "blake2b_256": "BLK2"}


def _framed(parts: Iterable[bytes]) -> bytes:
    """Join byte strings with 4-byte big-endian length prefixes.

    Parameters
    ----------
    parts : Iterable[bytes]
        Fields to join.

    Returns
    -------
    bytes
        Unambiguous concatenation of ``parts``.
    """
    return b"".join(len(part).to_bytes(4, "big") + part for part in parts)


def _identity_bytes(participant_id: str) -> bytes:
    """Encode a participant identity the same way the canonicalizer does.

    Parameters
    ----------
    participant_id : str
        Identity to encode.

    Returns
    -------
    bytes
        NFC-normalised UTF-8 bytes.
    """
    return unicodedata.normalize("NFC", participant_id).encode("utf-8")


def seal(
    record_digest: Digest,
    participant_id: str,
    key: Optional[bytes] = None,
    config: Optional[IntegrityConfig] = None,
) -> bytes:
    """Bind a digest to a participant with a keyed hash.

    Parameters
    ----------
    record_digest : Digest
        Digest of the canonical record.
    participant_id : str
        Identity claiming the record.
    key : bytes | None, optional
        HMAC key; defaults to the configured seal key.
    config : IntegrityConfig | None, optional
        Source of the default key; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bytes
        32-byte HMAC-SHA256 over ``algorithm``, digest value and identity.
    """
    cfg = config or CORE_CONFIG.integrity
    message = _framed(
        [record_digest.algorithm.encode("utf-8"), record_digest.value, _identity_bytes(participant_id)]
    )
    return hmac.new(key if key is not None else cfg.seal_key, message, hashlib.sha256).digest()


def verify_seal(
    seal_bytes: bytes,
    record_digest: Digest,
    participant_id: str,
    key: Optional[bytes] = None,
    config: Optional[IntegrityConfig] = None,
) -> bool:
    """Check a seal against a digest and identity in constant time.

    Parameters
    ----------
    seal_bytes : bytes
        Seal stored alongside the record.
    record_digest : Digest
        Digest the seal is expected to cover.
    participant_id : str
        Identity the seal is expected to bind.
    key : bytes | None, optional
        HMAC key; defaults to the configured seal key.
    config : IntegrityConfig | None, optional
        Source of the default key; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bool
        ``True`` when the seal matches.
    """
    expected = seal(record_digest, participant_id, key=key, config=config)
    return hmac.compare_digest(expected, bytes(seal_bytes))


def proof(
    record: MatchRecord,
    participant_id: str,
    record_digest: Optional[Digest] = None,
    config: Optional[IntegrityConfig] = None,
) -> str:
    """Render a compact proof string for display or transcription.

    The format is ``PROOF-<TAG>-<DIGEST>-<CHECK>``: a four letter algorithm
    tag, the leading digest characters in upper-case hex and an eight
    character CRC32 over the tag, digest and participant.

    Parameters
    ----------
    record : MatchRecord
        Record the proof describes.
    participant_id : str
        Identity the proof is issued for.
    record_digest : Digest | None, optional
        Precomputed digest of ``record``; computed when omitted.
    config : IntegrityConfig | None, optional
        Digest length and hash settings; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    str
        The proof string.
    """
    cfg = config or CORE_CONFIG.integrity
    if record_digest is None:
        record_digest = digest_record(record, cfg)
    tag = _PROOF_TAGS.get(record_digest.algorithm, record_digest.algorithm.upper()[:4])
    head = record_digest.hex[: cfg.proof_digest_chars].upper()
    check = zlib.crc32(f"{tag}:{head}:".encode("utf-8") + _identity_bytes(participant_id))
    return f"{PROOF_PREFIX}-{tag}-{head}-{check:08X}"


def verify_proof(proof_string: str, verified: VerifiedMatchRecord, config: Optional[IntegrityConfig] = None) -> bool:
    """Check that a proof string belongs to a verified record.

    Parameters
    ----------
    proof_string : str
        Proof to check, usually ``verified.proof``.
    verified : VerifiedMatchRecord
        Record whose stored digest and participant the proof must match.
    config : IntegrityConfig | None, optional
        Digest length settings; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bool
        ``True`` when re-rendering the proof yields ``proof_string``.
    """
    expected = proof(verified.record, verified.participant_id, verified.digest, config)
    return expected == proof_string.strip().upper()


def seal_record(
    record: MatchRecord,
    participant_id: Optional[str] = None,
    *,
    key: Optional[bytes] = None,
    config: Optional[IntegrityConfig] = None,
    debugger: Optional["MatchDebugger"] = None,
) -> VerifiedMatchRecord:
    """Fingerprint, seal and check a completed match record.

    Structural problems raise. A record whose score disagrees with its event
    log is still sealed, but with ``integrity_verified`` set to ``False`` so
    callers can render it as untrusted.

    Parameters
    ----------
    record : MatchRecord
        Record produced by the match simulation.
    participant_id : str | None, optional
        Identity to seal for; defaults to ``record.participant_id`` and must
        equal it when given.
    key : bytes | None, optional
        HMAC key; defaults to the configured seal key.
    config : IntegrityConfig | None, optional
        Hashing and proof settings; defaults to ``CORE_CONFIG.integrity``.
    debugger : MatchDebugger | None, optional
        Receives a ``VERIFY`` line describing the result.

    Returns
    -------
    VerifiedMatchRecord
        New value wrapping ``record``; the input is not modified.

    Raises
    ------
    ValidationError
        When the record is malformed or claimed by a different participant.
    """
    cfg = config or CORE_CONFIG.integrity
    try:
        validate_record(record)
        if participant_id is not None and participant_id != record.participant_id:
            raise ValidationError(
                f"record {record.id!r} is claimed by {record.participant_id!r}, not {participant_id!r}"
            )
    except ValidationError as exc:
        if debugger:
            debugger.log_error("VALIDATION", str(exc))
        raise

    record_digest = digest_record(record, cfg)
    problems = consistency_problems(record)
    verified = VerifiedMatchRecord(
        record=record,
        digest=record_digest,
        seal=seal(record_digest, record.participant_id, key=key, config=cfg),
        proof=proof(record, record.participant_id, record_digest, cfg),
        integrity_verified=not problems,
    )
    if debugger:
        debugger.log_verification(record.id, record.participant_id, record_digest.hex, verified.integrity_verified, problems)
    return verified
