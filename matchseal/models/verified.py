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
"""Value types produced by sealing and reverification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from matchseal.models.match import MatchRecord


@dataclass(frozen=True, slots=True)
class Digest:
    """Fixed-size cryptographic hash of a canonical record encoding.

    Parameters
    ----------
    value : bytes
        Raw digest bytes.
    algorithm : str
        Name of the hash algorithm that produced ``value``.
    sections : Dict[str, bytes], default={}
        Advisory per-section digests (``header``, ``result``,
        ``participant``, ``events``). They are not covered by the seal and
        only help name which part of a record changed.
    """

    value: bytes
    algorithm: str
    sections: Dict[str, bytes] = field(default_factory=dict)

    @property
    def hex(self) -> str:
        """Return the digest value as lowercase hex."""
        return self.value.hex()


@dataclass(frozen=True, slots=True)
class VerifiedMatchRecord:
    """Match record together with its digest, seal and proof.

    Parameters
    ----------
    record : MatchRecord
        The record exactly as it was sealed.
    digest : Digest
        Digest of the canonical encoding of ``record``.
    seal : bytes
        Keyed digest binding ``digest`` to ``record.participant_id``.
    proof : str
        Compact textual projection of the digest for display.
    integrity_verified : bool
        Whether the record passed the consistency checks when sealed.
    """

    record: MatchRecord
    digest: Digest
    seal: bytes
    proof: str
    integrity_verified: bool

    @property
    def participant_id(self) -> str:
        """Return the identity the record was sealed for."""
        return self.record.participant_id


@dataclass(frozen=True, slots=True)
class VerificationFinding:
    """Outcome of re-checking a verified record.

    Parameters
    ----------
    still_valid : bool
        ``True`` when the digest, seal and proof all still match.
    details : List[str]
        Ordered, human-readable descriptions of every mismatch found.
    """

    still_valid: bool
    details: List[str] = field(default_factory=list)
