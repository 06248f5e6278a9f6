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
"""Central configuration for the integrity and replay core."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class IntegrityConfig:
    """Parameters shared by the hasher, sealer and proof encoders.

    Parameters
    ----------
    hash_algorithm : str, default="sha256"
        Name of the digest algorithm applied to canonical record bytes.
    seal_key : bytes, default=b"matchseal-local-seal-key"
        HMAC key binding a digest to a participant. Deployments replace it.
    canonical_format : str, default="matchseal/1"
        Version tag written at the start of every canonical encoding.
    proof_digest_chars : int, default=16
        Number of hex characters of the digest shown in a proof string.
    share_link_prefix : str, default="touchline://verify/"
        URL scheme prepended to share codes by ``share_link``.
    """

    hash_algorithm: str = "sha256"
    seal_key: bytes = b"matchseal-local-seal-key"
    canonical_format: str = "matchseal/1"
    proof_digest_chars: int = 16
    share_link_prefix: str = "touchline://verify/"


@dataclass(slots=True)
class ReplayConfig:
    """Playback speed limits and real-time loop pacing.

    Parameters
    ----------
    default_speed : float, default=1.0
        Speed multiplier a new session starts with.
    max_speed : float, default=64.0
        Largest multiplier ``set_speed`` accepts.
    frame_sleep : float, default=0.016
        Seconds the real-time clock sleeps between polls.
    """

    default_speed: float = 1.0
    max_speed: float = 64.0
    frame_sleep: float = 0.016  # 60fps target


@dataclass(slots=True)
class CoreConfig:
    """Aggregate configuration for the verification and replay subsystems.

    Parameters
    ----------
    integrity : IntegrityConfig
        Hashing, sealing and proof settings.
    replay : ReplayConfig
        Playback settings.
    """

    integrity: IntegrityConfig = field(default_factory=IntegrityConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)


CORE_CONFIG = CoreConfig()
