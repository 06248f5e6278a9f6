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
"""Cryptographic digests over canonical record bytes."""

from __future__ import annotations

import hashlib
from typing import Any, Callable, Dict, Optional

from matchseal.config import CORE_CONFIG, IntegrityConfig
from matchseal.integrity.canonical import canonical_outcome, canonical_sections, canonicalize
from matchseal.models.match import MatchRecord
from matchseal.models.verified import Digest

# All 256-bit; a non-cryptographic checksum must never be registered here.
_ALGORITHMS: Dict[str, Callable[[bytes], Any]] = {
    "sha256": hashlib.sha256,
    "sha3_256": hashlib.sha3_256,
    "blake2b_256": lambda data: hashlib.blake2b(data, digest_size=32),
}


def supported_algorithms() -> tuple[str, ...]:
    """Return the names ``digest`` accepts.

    Returns
    -------
    tuple[str, ...]
        Algorithm names in sorted order.
    """
    return tuple(sorted(_ALGORITHMS))


def digest(data: bytes, algorithm: str = "sha256") -> Digest:
    """Hash a byte string.

    Parameters
    ----------
    data : bytes
        Canonical bytes to hash.
    algorithm : str, default="sha256"
        One of :func:`supported_algorithms`.

    Returns
    -------
    Digest
        The 32-byte digest tagged with ``algorithm``.

    Raises
    ------
    ValueError
        When ``algorithm`` is not supported.
    """
    try:
        factory = _ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(
            f"Unsupported digest algorithm {algorithm!r}; expected one of {', '.join(supported_algorithms())}"
        ) from None
    return Digest(value=factory(bytes(data)).digest(), algorithm=algorithm)


def digest_record(record: MatchRecord, config: Optional[IntegrityConfig] = None) -> Digest:
    """Canonicalize and hash a record, including advisory section digests.

    Parameters
    ----------
    record : MatchRecord
        Record to fingerprint.
    config : IntegrityConfig | None, optional
        Hash algorithm and format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    Digest
        Whole-record digest whose ``sections`` map holds one digest per
        canonical section.
    """
    cfg = config or CORE_CONFIG.integrity
    whole = digest(canonicalize(record, cfg), cfg.hash_algorithm)
    sections = {
        name: digest(encoded, cfg.hash_algorithm).value
        for name, encoded in canonical_sections(record, cfg).items()
    }
    return Digest(value=whole.value, algorithm=whole.algorithm, sections=sections)


def outcome_fingerprint(record: MatchRecord, config: Optional[IntegrityConfig] = None) -> str:
    """Return a short fingerprint of a match result for deduplication.

    Unlike :func:`digest_record`, the fingerprint ignores the match id, the
    participant and everything in the log except goals.

    Parameters
    ----------
    record : MatchRecord
        Record to fingerprint.
    config : IntegrityConfig | None, optional
        Hash algorithm and format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    str
        First 32 hex characters of the outcome digest.
    """
    cfg = config or CORE_CONFIG.integrity
    return digest(canonical_outcome(record, cfg), cfg.hash_algorithm).value.hex()[:32]


def same_outcome(first: MatchRecord, second: MatchRecord, config: Optional[IntegrityConfig] = None) -> bool:
    """Tell whether two records describe the same match result.

    Parameters
    ----------
    first : MatchRecord
        One record.
    second : MatchRecord
        Record to compare against.
    config : IntegrityConfig | None, optional
        Hash algorithm and format tag; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    bool
        ``True`` when both fingerprints are equal.
    """
    return outcome_fingerprint(first, config) == outcome_fingerprint(second, config)
