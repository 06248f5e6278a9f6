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
"""Structured logging utilities used to trace verification and replay."""
import time
from collections import deque
from pathlib import Path
from threading import Lock
from typing import Deque, List, Optional, Sequence, TextIO, Tuple


class MatchDebugger:
    """Helper object that records structured verification and replay telemetry.

    Entries are always kept in a bounded in-memory buffer; they are also
    streamed to a session file when ``output_dir`` is given.

    Parameters
    ----------
    output_dir : str | None, default=None
        Directory where session logs are created; created automatically when
        missing. ``None`` keeps the log in memory only.
    max_recent : int, default=200
        Number of entries retained for :meth:`get_recent_events`.
    """

    def __init__(self, output_dir: Optional[str] = None, max_recent: int = 200) -> None:
        self.output_dir = Path(output_dir) if output_dir else None
        self.log_file: Optional[TextIO] = None
        self.session_start = time.strftime("%Y%m%d_%H%M%S")
        self._lock = Lock()
        self._line_number = 1
        self._recent_events: Deque[Tuple[int, str]] = deque(maxlen=max_recent)
        if self.output_dir is not None:
            self.start_new_session()

    def start_new_session(self) -> None:
        """Start a new debug log file in ``output_dir``."""
        if self.output_dir is None:
            return
        if self.log_file:
            self.log_file.close()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"matchseal_debug_{self.session_start}.txt"
        self.log_file = open(self.output_dir / filename, "w", encoding="utf-8")
        self.log_file.write(f"=== Matchseal Debug Session: {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")

    def log_verification(
        self,
        match_id: str,
        participant_id: str,
        digest_hex: str,
        verified: bool,
        problems: Optional[Sequence[str]] = None,
    ) -> None:
        """Log the result of sealing a record.

        Parameters
        ----------
        match_id : str
            Identifier of the sealed match.
        participant_id : str
            Identity the record was sealed for.
        digest_hex : str
            Hex digest of the canonical record.
        verified : bool
            Whether the record passed the consistency checks.
        problems : Sequence[str] | None
            Consistency problems found, if any.
        """
        problem_str = f" | Problems: {'; '.join(problems)}" if problems else ""
        self._write_log(
            "VERIFY",
            f"Match: {match_id} | Participant: {participant_id} | "
            f"Digest: {digest_hex[:16]} | Verified: {verified}"
            f"{problem_str}",
        )

    def log_reverification(self, match_id: str, still_valid: bool, details: Sequence[str]) -> None:
        """Log the result of re-checking a sealed record.

        Parameters
        ----------
        match_id : str
            Identifier of the checked match.
        still_valid : bool
            Whether the record still matches its seal.
        details : Sequence[str]
            Mismatch descriptions reported by the reverifier.
        """
        detail_str = f" | Details: {'; '.join(details)}" if details else ""
        self._write_log("REVERIFY", f"Match: {match_id} | Still Valid: {still_valid}{detail_str}")

    def log_replay_state(self, previous: str, current: str, cursor_ms: float, reason: str = "") -> None:
        """Log a replay run-state transition or seek.

        Parameters
        ----------
        previous : str
            Run state before the change.
        current : str
            Run state after the change.
        cursor_ms : float
            Cursor position in simulated milliseconds.
        reason : str
            Control or condition that triggered the change.
        """
        reason_str = f" | Reason: {reason}" if reason else ""
        self._write_log("REPLAY_STATE", f"Cursor: {cursor_ms / 1000:.1f}s | {previous} -> {current}{reason_str}")

    def log_replay_event(self, cursor_ms: float, event_kind: str, team: str, description: str) -> None:
        """Log an event delivered during playback.

        Parameters
        ----------
        cursor_ms : float
            Simulated time of the event in milliseconds.
        event_kind : str
            Event category.
        team : str
            Side the event is credited to.
        description : str
            Human-readable summary of the event.
        """
        self._write_log(
            "REPLAY_EVENT",
            f"Time: {cursor_ms / 1000:.1f}s | Event: {event_kind} | Team: {team} | Details: {description}",
        )

    def log_error(self, error_type: str, description: str) -> None:
        """Log an error or warning.

        Parameters
        ----------
        error_type : str
            Label describing the error classification.
        description : str
            Human-readable explanation of the issue.
        """
        self._write_log("ERROR", f"Type: {error_type} | Details: {description}")

    def _write_log(self, event_type: str, details: str) -> None:
        """Write a log entry to the buffer and, when open, the file.

        Parameters
        ----------
        event_type : str
            Category label for the log entry.
        details : str
            Formatted message body to persist.
        """
        timestamp = time.strftime("%H:%M:%S")
        log_entry = f"[{timestamp}] {event_type}: {details}"

        with self._lock:
            line_no = self._line_number
            self._line_number += 1
            self._recent_events.append((line_no, log_entry))

            if self.log_file:
                self.log_file.write(f"{log_entry}\n")
                self.log_file.flush()

    def get_recent_events(self, limit: int = 20) -> List[str]:
        """Return the latest debug entries with line numbers.

        Parameters
        ----------
        limit : int
            Maximum number of entries to return.

        Returns
        -------
        List[str]
            Up to ``limit`` most recent log lines with prefixed line numbers.
        """
        with self._lock:
            selected = list(self._recent_events)[-limit:]
        return [f"{line_no:05d} {entry}" for line_no, entry in selected]

    def close(self) -> None:
        """Close the log file."""
        if self.log_file:
            self.log_file.close()
            self.log_file = None
