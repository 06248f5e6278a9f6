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
"""Exceptions raised at the boundaries of the core.

Tampered records are not errors: verification reports them as values. The
exceptions here cover malformed input and misuse of the replay controls.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class ValidationError(ValueError):
    """Raised when a match record or event is malformed.

    Parameters
    ----------
    message : str
        Summary of what was rejected.
    problems : Sequence[str] | None, optional
        Every individual problem found, when more than one was collected.
    """

    def __init__(self, message: str, problems: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.problems: List[str] = list(problems) if problems else [message]


class SchedulerMisuseError(ValueError):
    """Raised when a replay control is called with an illegal argument.

    Parameters
    ----------
    message : str
        Description of the rejected call.
    operation : str
        Name of the control that rejected it (for example ``"set_speed"``).
    """

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(message)
        self.operation = operation
