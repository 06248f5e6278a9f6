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
"""Tamper-evident match outcomes and deterministic match replay."""

from __future__ import annotations

from matchseal.errors import SchedulerMisuseError, ValidationError
from matchseal.integrity.reverify import reverify
from matchseal.integrity.sealer import seal_record
from matchseal.models.match import MatchEvent, MatchRecord
from matchseal.models.verified import Digest, VerificationFinding, VerifiedMatchRecord
from matchseal.replay.clock import ManualClock, RealTimeClock
from matchseal.replay.session import ReplaySession

__version__ = "0.1.0"

__all__ = [
    "Digest",
    "ManualClock",
    "MatchEvent",
    "MatchRecord",
    "RealTimeClock",
    "ReplaySession",
    "SchedulerMisuseError",
    "ValidationError",
    "VerificationFinding",
    "VerifiedMatchRecord",
    "reverify",
    "seal_record",
]
