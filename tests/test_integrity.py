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
"""Tests for canonical encoding, hashing, sealing and proofs."""

from __future__ import annotations

import dataclasses
import re
from typing import Callable

import pytest

from conftest import build_events, build_record
from matchseal.config import IntegrityConfig
from matchseal.errors import ValidationError
from matchseal.integrity.canonical import SECTION_NAMES, canonical_sections, canonicalize
from matchseal.integrity.hasher import digest, digest_record, supported_algorithms
from matchseal.integrity.sealer import proof, seal, seal_record, verify_proof, verify_seal
from matchseal.models.match import MatchEvent, MatchRecord
from matchseal.utils.debug import MatchDebugger

PROOF_PATTERN = re.compile(r"^PROOF-SHA2-[0-9A-F]{16}-[0-9A-F]{8}$")


def _replace_event(record: MatchRecord, index: int, **changes) -> MatchRecord:
    """Return ``record`` with one event edited.

    Parameters
    ----------
    record : MatchRecord
        Base record.
    index : int
        Position of the event to edit.
    **changes
        Field values to set on the event.

    Returns
    -------
    MatchRecord
        Edited copy.
    """
    events = list(record.events)
    events[index] = dataclasses.replace(events[index], **changes)
    return dataclasses.replace(record, events=tuple(events))


MUTATIONS: dict[str, Callable[[MatchRecord], MatchRecord]] = {
    "home_score": lambda r: dataclasses.replace(r, home_score=3),
    "away_score": lambda r: dataclasses.replace(r, away_score=0),
    "outcome": lambda r: dataclasses.replace(r, outcome="draw"),
    "participant": lambda r: dataclasses.replace(r, participant_id="mallory"),
    "side": lambda r: dataclasses.replace(r, participant_side="away"),
    "match_id": lambda r: dataclasses.replace(r, id="match-002"),
    "team_name": lambda r: dataclasses.replace(r, away_team_name="Everton"),
    "duration": lambda r: dataclasses.replace(r, duration_minutes=120),
    "event_kind": lambda r: _replace_event(r, 1, kind="shot"),
    "event_team": lambda r: _replace_event(r, 4, team="home"),
    "event_actor": lambda r: _replace_event(r, 5, actor="Robert Jones #11"),
    "event_time": lambda r: _replace_event(r, 3, simulated_time_ms=1_200_001),
    "event_extra": lambda r: _replace_event(r, 3, extra={"card": "red"}),
    "event_removed": lambda r: dataclasses.replace(r, events=r.events[:-1]),
    "event_added": lambda r: dataclasses.replace(
        r, events=r.events + (MatchEvent("injury", 5_400_000, "away", "Luis Jones #8"),)
    ),
    "tie_reordered": lambda r: dataclasses.replace(r, events=(r.events[0], r.events[2], r.events[1]) + r.events[3:]),
}


class TestCanonicalize:
    """Tests for the canonical byte encoding."""

    def test_equal_records_encode_identically(self) -> None:
        assert canonicalize(build_record()) == canonicalize(build_record())

    def test_format_tag_leads(self, record) -> None:
        assert canonicalize(record).startswith(b'["matchseal/1",["header",')

    def test_format_tag_follows_config(self, record) -> None:
        encoded = canonicalize(record, IntegrityConfig(canonical_format="matchseal/2"))
        assert encoded.startswith(b'["matchseal/2"')
        assert encoded != canonicalize(record)

    def test_output_is_compact_utf8(self, record) -> None:
        renamed = dataclasses.replace(record, home_team_name="Atlético Madrid")
        encoded = canonicalize(renamed)
        assert "Atlético".encode("utf-8") in encoded
        assert b", " not in encoded and b": " not in encoded

    def test_unicode_normal_forms_agree(self, record) -> None:
        composed = dataclasses.replace(record, home_team_name="Atl\u00e9tico")
        decomposed = dataclasses.replace(record, home_team_name="Atle\u0301tico")
        assert composed.home_team_name != decomposed.home_team_name
        assert canonicalize(composed) == canonicalize(decomposed)

    def test_extra_key_order_is_irrelevant(self, record) -> None:
        a = _replace_event(record, 3, extra={"card": "yellow", "reason": "dissent"})
        b = _replace_event(record, 3, extra={"reason": "dissent", "card": "yellow"})
        assert canonicalize(a) == canonicalize(b)

    @pytest.mark.parametrize("name", sorted(MUTATIONS))
    def test_any_change_alters_bytes(self, record, name: str) -> None:
        assert canonicalize(MUTATIONS[name](record)) != canonicalize(record)

    def test_sections_cover_whole_record(self, record) -> None:
        sections = canonical_sections(record)
        assert tuple(sections) == SECTION_NAMES
        changed = canonical_sections(dataclasses.replace(record, participant_id="bob"))
        assert [n for n in SECTION_NAMES if sections[n] != changed[n]] == ["participant"]

    def test_malformed_record_rejected(self, record) -> None:
        with pytest.raises(ValidationError):
            canonicalize(dataclasses.replace(record, home_score="2"))  # type: ignore[arg-type]


class TestHasher:
    """Tests for digest computation."""

    @pytest.mark.parametrize("algorithm", ["sha256", "sha3_256", "blake2b_256"])
    def test_supported_algorithms_are_256_bit(self, algorithm: str) -> None:
        result = digest(b"matchseal", algorithm)
        assert result.algorithm == algorithm
        assert len(result.value) == 32
        assert result.hex == result.value.hex()

    def test_known_sha256_value(self) -> None:
        assert digest(b"abc").hex == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_unknown_algorithm_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported digest algorithm"):
            digest(b"abc", "crc32")

    def test_supported_algorithms_listing(self) -> None:
        assert supported_algorithms() == ("blake2b_256", "sha256", "sha3_256")

    def test_digest_record_is_deterministic(self) -> None:
        first = digest_record(build_record())
        second = digest_record(build_record())
        assert first == second
        assert set(first.sections) == set(SECTION_NAMES)
        assert first.value == digest(canonicalize(build_record())).value

    def test_record_digest_uses_configured_algorithm(self, record) -> None:
        result = digest_record(record, IntegrityConfig(hash_algorithm="sha3_256"))
        assert result.algorithm == "sha3_256"
        assert result.value != digest_record(record).value


class TestSeal:
    """Tests for participant binding."""

    def test_seal_binds_participant(self, record) -> None:
        record_digest = digest_record(record)
        sealed = seal(record_digest, "alice")
        assert len(sealed) == 32
        assert verify_seal(sealed, record_digest, "alice")
        assert not verify_seal(sealed, record_digest, "mallory")
        assert seal(record_digest, "mallory") != sealed

    def test_seal_depends_on_key(self, record) -> None:
        record_digest = digest_record(record)
        sealed = seal(record_digest, "alice", key=b"server-key")
        assert not verify_seal(sealed, record_digest, "alice")
        assert verify_seal(sealed, record_digest, "alice", key=b"server-key")

    def test_seal_depends_on_algorithm_label(self, record) -> None:
        record_digest = digest_record(record)
        relabelled = dataclasses.replace(record_digest, algorithm="sha3_256")
        assert seal(record_digest, "alice") != seal(relabelled, "alice")


class TestProof:
    """Tests for the compact proof string."""

    def test_proof_format(self, record) -> None:
        text = proof(record, "alice")
        assert PROOF_PATTERN.match(text)
        assert text.split("-")[2] == digest_record(record).hex[:16].upper()

    def test_proof_is_deterministic_and_identity_bound(self, record) -> None:
        assert proof(record, "alice") == proof(build_record(), "alice")
        assert proof(record, "alice") != proof(record, "bob")

    def test_proof_tags_algorithm(self, record) -> None:
        cfg = IntegrityConfig(hash_algorithm="blake2b_256")
        assert proof(record, "alice", config=cfg).startswith("PROOF-BLK2-")

    def test_verify_proof_is_case_insensitive(self, record) -> None:
        verified = seal_record(record)
        assert verify_proof(verified.proof, verified)
        assert verify_proof(f"  {verified.proof.lower()} ", verified)
        assert not verify_proof(proof(record, "bob"), verified)
        assert not verify_proof("PROOF-SHA2-0000", verified)


class TestSealRecord:
    """Tests for building verified records."""

    def test_consistent_record_is_verified(self, record) -> None:
        verified = seal_record(record)
        assert verified.integrity_verified
        assert verified.record is record
        assert verified.participant_id == "alice"
        assert verified.digest == digest_record(record)
        assert verify_seal(verified.seal, verified.digest, "alice")
        assert PROOF_PATTERN.match(verified.proof)

    def test_inconsistent_record_is_flagged_not_raised(self, record) -> None:
        verified = seal_record(dataclasses.replace(record, home_score=5, outcome="win"))
        assert not verified.integrity_verified

    def test_empty_event_log_can_be_sealed(self) -> None:
        empty = dataclasses.replace(build_record(), events=(), home_score=0, away_score=0, outcome="draw")
        assert seal_record(empty).integrity_verified

    def test_other_participant_rejected(self, record) -> None:
        with pytest.raises(ValidationError, match="claimed by 'alice'"):
            seal_record(record, "mallory")
        assert seal_record(record, "alice").integrity_verified

    def test_malformed_record_raises_and_logs(self, record) -> None:
        debugger = MatchDebugger()
        bad = dataclasses.replace(record, events=build_events()[::-1])
        with pytest.raises(ValidationError):
            seal_record(bad, debugger=debugger)
        assert "ERROR: Type: VALIDATION" in debugger.get_recent_events()[-1]

    def test_sealing_is_logged(self, record) -> None:
        debugger = MatchDebugger()
        seal_record(record, debugger=debugger)
        entry = debugger.get_recent_events()[-1]
        assert "VERIFY: Match: match-001 | Participant: alice" in entry
        assert "Verified: True" in entry
