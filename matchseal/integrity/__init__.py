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
"""Canonical encoding, hashing, sealing and reverification of match records."""

from __future__ import annotations

from .canonical import canonical_outcome, canonical_sections, canonicalize
from .hasher import digest, digest_record, outcome_fingerprint, same_outcome, supported_algorithms
from .reverify import reverify
from .sealer import proof, seal, seal_record, verify_proof, verify_seal
from .share import matches_share_code, share_code, share_link

__all__ = [
    "canonical_outcome",
    "canonical_sections",
    "canonicalize",
    "digest",
    "digest_record",
    "matches_share_code",
    "outcome_fingerprint",
    "proof",
    "reverify",
    "same_outcome",
    "seal",
    "seal_record",
    "share_code",
    "share_link",
    "supported_algorithms",
    "verify_proof",
    "verify_seal",
]
