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
"""Tests for the replay scheduler driven by deterministic clocks."""

from __future__ import annotations

import gc
from typing import List, Tuple

import pytest

from matchseal.config import ReplayConfig
from matchseal.errors import SchedulerMisuseError, ValidationError
from matchseal.models.match import MatchEvent
from matchseal.replay.clock import CancellationToken, ManualClock, RealTimeClock
from matchseal.replay.cursor import fold_events, state_at
from matchseal.replay.session import ReplaySession
from matchseal.utils.debug import MatchDebugger


def _session(events, speed: float = 1.0, **kwargs) -> Tuple[ReplaySession, ManualClock, List[MatchEvent]]:
    """Build a session on a manual clock that records every delivery.

    Parameters
    ----------
    events : Sequence[MatchEvent]
        Log to replay.
    speed : float
        Initial speed multiplier.
    **kwargs
        Extra keyword arguments for :class:`ReplaySession`.

    Returns
    -------
    tuple[ReplaySession, ManualClock, List[MatchEvent]]
        Session, its clock and the list deliveries are appended to.
    """
    clock = ManualClock()
    session = ReplaySession(events, 5_400_000, clock, speed=speed, **kwargs)
    return session, clock, []


class TestManualClock:
    """Tests for the deterministic clock and its tokens."""

    def test_calls_run_in_due_order(self) -> None:
        clock = ManualClock()
        fired: List[str] = []
        clock.call_at(20, lambda: fired.append("b"))
        clock.call_at(10, lambda: fired.append("a"))
        clock.call_at(20, lambda: fired.append("c"))
        assert clock.advance(15) == 1
        assert clock.advance(5) == 2
        assert fired == ["a", "b", "c"]
        assert clock.now_ms() == 20

    def test_cancelled_call_never_runs(self) -> None:
        clock = ManualClock()
        fired: List[int] = []
        token = clock.call_later(10, lambda: fired.append(1))
        assert isinstance(token, CancellationToken) and token.active
        token.cancel()
        token.cancel()
        assert clock.pending == 0
        assert clock.advance(100) == 0
        assert fired == [] and token.cancelled and not token.fired

    def test_callback_sees_its_due_time(self) -> None:
        clock = ManualClock(start_ms=100)
        seen: List[float] = []
        clock.call_later(50, lambda: seen.append(clock.now_ms()))
        clock.advance(500)
        assert seen == [150]
        assert clock.now_ms() == 600

    def test_cannot_move_backwards(self) -> None:
        with pytest.raises(ValueError):
            ManualClock().advance(-1)

    def test_run_until_idle_respects_limit(self) -> None:
        clock = ManualClock()
        clock.call_at(10, lambda: None)
        clock.call_at(1_000, lambda: None)
        assert clock.run_until_idle(limit_ms=500) == 1
        assert clock.next_due_ms() == 1_000


class TestPlayback:
    """Tests for play, completion and delivery timing."""

    def test_events_delivered_when_due(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        assert session.run_state == "playing"
        clock.advance(899_999)
        assert [e.kind for e in delivered] == ["match_start"]
        clock.advance(1)
        assert [e.kind for e in delivered] == ["match_start", "goal", "assist"]
        assert session.cursor_ms == 900_000

    def test_speed_scales_wall_time(self, events) -> None:
        session, clock, delivered = _session(events, speed=2.0)
        session.play(delivered.append)
        clock.advance(449_999)
        assert len(delivered) == 1
        clock.advance(1)
        assert len(delivered) == 3

    def test_completion(self, events) -> None:
        session, clock, delivered = _session(events, speed=64.0)
        completed: List[bool] = []
        session.play(delivered.append, lambda: completed.append(True))
        clock.run_until_idle()
        assert tuple(delivered) == events
        assert completed == [True]
        assert session.finished and session.run_state == "idle"
        assert session.current_state() == state_at(events, 5_400_000)

    def test_play_after_completion_completes_again(self, events) -> None:
        session, clock, delivered = _session(events, speed=64.0)
        session.play(delivered.append)
        clock.run_until_idle()
        completed: List[bool] = []
        session.play(delivered.append, lambda: completed.append(True))
        assert completed == [True]
        assert len(delivered) == len(events)

    def test_play_while_playing_is_noop(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        session.play(delivered.append)
        clock.advance(900_000)
        assert [e.kind for e in delivered] == ["match_start", "goal", "assist"]
        assert clock.pending == 1

    def test_empty_log_completes_immediately(self) -> None:
        clock = ManualClock()
        session = ReplaySession((), 0, clock)
        delivered: List[MatchEvent] = []
        completed: List[bool] = []
        session.play(delivered.append, lambda: completed.append(True))
        assert completed == [True]
        assert delivered == []
        assert session.run_state == "idle"
        assert clock.pending == 0
        assert session.skip_to(5_000).events_up_to == ()

    def test_elapsed_is_live_while_playing(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(500)
        assert session.elapsed_ms == 500
        assert session.cursor_ms == 0
        session.pause()
        assert session.elapsed_ms == 0

    def test_stoppage_time_extends_duration(self) -> None:
        late = (MatchEvent("goal", 5_500_000, "away", "x"),)
        session, _, _ = _session(late)
        assert session.duration_ms == 5_500_000
        assert session.skip_to(10**9).away_score == 1


class TestControls:
    """Tests for pause, stop, seek and speed changes."""

    def test_pause_and_resume(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(1_000_000)
        session.pause()
        assert session.run_state == "paused"
        assert session.cursor_ms == 900_000
        clock.advance(10_000_000)
        assert len(delivered) == 3
        session.play(delivered.append)
        clock.advance(299_999)
        assert len(delivered) == 3
        clock.advance(1)
        assert delivered[-1].kind == "card"

    def test_speed_change_reschedules_without_loss(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(1_000_000)
        session.set_speed(4.0)
        assert session.speed == 4.0
        clock.advance(49_999)
        assert len(delivered) == 3
        clock.advance(1)
        assert delivered[-1].kind == "card"
        clock.advance(149_999)
        assert len(delivered) == 4
        clock.advance(1)
        assert delivered[-1].simulated_time_ms == 1_800_000
        clock.run_until_idle()
        assert tuple(delivered) == events

    def test_doubling_speed_at_ten_seconds(self) -> None:
        ticks = tuple(MatchEvent("pass", t, "home", "a") for t in (0, 10_000, 20_000))
        session, clock, delivered = _session(ticks)
        session.play(delivered.append)
        clock.advance(10_000)
        assert len(delivered) == 2
        session.set_speed(2)
        clock.advance(4_999)
        assert len(delivered) == 2
        clock.advance(1)
        assert tuple(delivered) == ticks
        assert session.finished

    def test_speed_change_while_idle(self, events) -> None:
        session, clock, delivered = _session(events)
        session.set_speed(8.0)
        session.play(delivered.append)
        clock.advance(112_500)
        assert len(delivered) == 3

    def test_skip_to_while_playing(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(0)
        state = session.skip_to(2_000_000)
        assert (state.home_score, state.away_score) == (1, 1)
        assert session.cursor_ms == 2_000_000
        clock.advance(699_999)
        assert [e.kind for e in delivered] == ["match_start"]
        clock.advance(1)
        assert [e.simulated_time_ms for e in delivered] == [0, 2_700_000]
        assert session.current_state().home_score == 2

    def test_skip_to_clamps(self, events) -> None:
        session, _, _ = _session(events)
        session.skip_to(-50)
        assert session.cursor_ms == 0
        final = session.skip_to(99_000_000)
        assert session.cursor_ms == 5_400_000
        assert (final.home_score, final.away_score) == (2, 1)
        assert session.run_state == "idle"

    def test_skip_backwards_then_play(self, events) -> None:
        session, clock, delivered = _session(events, speed=64.0)
        session.play(delivered.append)
        clock.run_until_idle()
        session.skip_to(1_000_000)
        assert not session.finished
        session.play(delivered.append)
        clock.run_until_idle()
        assert [e.simulated_time_ms for e in delivered[len(events):]] == [1_200_000, 1_800_000, 2_700_000, 5_400_000]

    def test_stop_rewinds(self, events) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(2_000_000)
        session.stop()
        assert session.run_state == "idle"
        assert session.cursor_ms == 0
        assert clock.pending == 0
        assert session.current_state().events_up_to == ()
        clock.advance(10_000_000)
        assert len(delivered) == 5

    def test_callback_may_pause(self) -> None:
        tied = (
            MatchEvent("goal", 1_000, "home", "a"),
            MatchEvent("assist", 1_000, "home", "b"),
        )
        session, clock, delivered = _session(tied)

        def on_event(event: MatchEvent) -> None:
            delivered.append(event)
            session.pause()

        session.play(on_event)
        clock.advance(5_000)
        assert [e.kind for e in delivered] == ["goal"]
        assert session.run_state == "paused"
        session.play(delivered.append)
        clock.advance(0)
        assert [e.kind for e in delivered] == ["goal", "assist"]

    def test_callback_error_pauses_and_propagates(self, events) -> None:
        session, clock, delivered = _session(events)

        def on_event(event: MatchEvent) -> None:
            if event.is_goal:
                raise RuntimeError("renderer failed")
            delivered.append(event)

        session.play(on_event)
        with pytest.raises(RuntimeError, match="renderer failed"):
            clock.advance(1_000_000)
        assert session.run_state == "paused"
        assert session.cursor_ms == 900_000
        session.play(delivered.append)
        clock.run_until_idle()
        assert [e.kind for e in delivered][:3] == ["match_start", "assist", "card"]


class TestConsistency:
    """Seeking and playing to the same time agree."""

    @pytest.mark.parametrize("target", [0, 899_999, 900_000, 1_500_000, 2_700_000, 5_400_000])
    def test_play_and_seek_agree(self, events, target: int) -> None:
        session, clock, delivered = _session(events)
        session.play(delivered.append)
        clock.advance(target)
        expected = state_at(events, target)
        assert fold_events(delivered) == expected
        assert session.current_state() == expected
        assert session.state_at(target) == expected

        seeker, _, _ = _session(events)
        assert seeker.skip_to(target) == expected


class TestMisuse:
    """Illegal arguments raise the dedicated errors."""

    @pytest.mark.parametrize("speed", [0, -1.0, float("nan"), float("inf"), 65.0, True, "2"])
    def test_illegal_speed(self, events, speed) -> None:
        session, _, _ = _session(events)
        with pytest.raises(SchedulerMisuseError) as excinfo:
            session.set_speed(speed)
        assert excinfo.value.operation == "set_speed"
        assert session.speed == 1.0

    def test_illegal_initial_speed(self, events) -> None:
        with pytest.raises(SchedulerMisuseError) as excinfo:
            _session(events, speed=0)
        assert excinfo.value.operation == "__init__"

    def test_max_speed_from_config(self, events) -> None:
        session, _, _ = _session(events, config=ReplayConfig(max_speed=128.0))
        session.set_speed(128.0)
        assert session.speed == 128.0

    @pytest.mark.parametrize("target", [float("nan"), "10", None])
    def test_illegal_seek(self, events, target) -> None:
        session, _, _ = _session(events)
        with pytest.raises(SchedulerMisuseError) as excinfo:
            session.skip_to(target)
        assert excinfo.value.operation == "skip_to"

    def test_malformed_events_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReplaySession([MatchEvent("goal", 10, "left", "x")], 1_000, ManualClock())  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            ReplaySession([], -1, ManualClock())


class TestLifecycle:
    """Dropping a session releases its scheduled work."""

    def test_dropped_session_cancels_pending(self, events) -> None:
        clock = ManualClock()
        session = ReplaySession(events, 5_400_000, clock)
        session.play()
        assert clock.pending == 1
        del session
        gc.collect()
        assert clock.pending == 0
        assert clock.advance(10_000_000) == 0

    def test_replay_is_logged(self, events) -> None:
        debugger = MatchDebugger()
        session, clock, delivered = _session(events, speed=64.0, debugger=debugger)
        session.play(delivered.append)
        clock.run_until_idle()
        lines = debugger.get_recent_events(limit=50)
        assert any("REPLAY_STATE" in line and "idle -> playing | Reason: play" in line for line in lines)
        assert any("REPLAY_EVENT" in line and "Event: goal | Team: away" in line for line in lines)
        assert "Reason: complete" in lines[-1]


class TestRealTimeClock:
    """A short replay on the wall clock delivers everything in order."""

    def test_real_time_run(self) -> None:
        quick = (
            MatchEvent("match_start", 0, "home", "referee"),
            MatchEvent("goal", 10, "away", "x"),
            MatchEvent("match_end", 20, "home", "referee"),
        )
        clock = RealTimeClock(frame_sleep=0.001)
        session = ReplaySession(quick, 20, clock)
        delivered: List[MatchEvent] = []
        session.play(delivered.append)
        clock.run()
        assert tuple(delivered) == quick
        assert session.finished
