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
"""Short, display-safe share codes for verified records.

A share code is a re-encoding of fields the verified record already
publishes (digest and seal), folded with the participant identity. It is
meant for showing next to a result or reading out loud; checking it still
requires the record it was derived from.
"""

from __future__ import annotations

import base64
import hashlib
import unicodedata
from typing import Optional

from matchseal.config import CORE_CONFIG, IntegrityConfig
from matchseal.models.verified import VerifiedMatchRecord

_GROUP = 4


def share_code(verified: VerifiedMatchRecord, participant_id: str) -> str:
    """Derive the share code of a verified record.

    Parameters
    ----------
    verified : VerifiedMatchRecord
        Sealed record.
    participant_id : str
        Identity the code is shown for.

    Returns
    -------
    str
        Sixteen base32 characters in four hyphen separated groups, for
        example ``"K3QF-7ZPA-M2XD-T6RC"``.
    """
    identity = unicodedata.normalize("NFC", participant_id).encode("utf-8")
    binding = hashlib.sha256(verified.seal + b"\x00" + identity).digest()
    raw = base64.b32encode(verified.digest.value[:5] + binding[:5]).decode("ascii")
    return "-".join(raw[i : i + _GROUP] for i in range(0, len(raw), _GROUP))


def normalize_share_code(code: str) -> str:
    """Canonicalise a transcribed share code.

    Parameters
    ----------
    code : str
        Code as typed by a user, possibly lower-case or with spaces.

    Returns
    -------
    str
        Upper-case code regrouped with hyphens.
    """
    compact = "".join(ch for ch in code.upper() if ch.isalnum())
    return "-".join(compact[i : i + _GROUP] for i in range(0, len(compact), _GROUP))


def matches_share_code(code: str, verified: VerifiedMatchRecord, participant_id: str) -> bool:
    """Check a transcribed share code against a record.

    Parameters
    ----------
    code : str
        Code to check.
    verified : VerifiedMatchRecord
        Record the code should have been derived from.
    participant_id : str
        Identity the code was shown for.

    Returns
    -------
    bool
        ``True`` when the normalised code equals the derived one.
    """
    return normalize_share_code(code) == share_code(verified, participant_id)


def share_link(
    verified: VerifiedMatchRecord, participant_id: str, config: Optional[IntegrityConfig] = None
) -> str:
    """Prefix the share code with the configured link scheme.

    Parameters
    ----------
    verified : VerifiedMatchRecord
        Sealed record.
    participant_id : str
        Identity the link is shown for.
    config : IntegrityConfig | None, optional
        Supplies ``share_link_prefix``; defaults to ``CORE_CONFIG.integrity``.

    Returns
    -------
    str
        Link such as ``"touchline://verify/K3QF-7ZPA-M2XD-T6RC"``.
    """
    cfg = config or CORE_CONFIG.integrity
    return f"{cfg.share_link_prefix}{share_code(verified, participant_id)}"
