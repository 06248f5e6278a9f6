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
"""Command line entry point for sealing, reverifying and replaying matches."""
import argparse
import dataclasses
import json
import sys
from typing import List, Optional

from matchseal.errors import SchedulerMisuseError, ValidationError
from matchseal.integrity.reverify import reverify
from matchseal.integrity.sealer import seal_record
from matchseal.integrity.share import share_code
from matchseal.models.match import MatchEvent, MatchRecord
from matchseal.replay.clock import ManualClock, RealTimeClock
from matchseal.replay.session import ReplaySession
from matchseal.replay.stats import MatchStats, top_performers
from matchseal.utils.debug import MatchDebugger
from matchseal.utils.generator import generate_match_record
from matchseal.utils.records import (
    finding_to_dict,
    load_records_from_json,
    load_verified_from_json,
    verified_to_dict,
)


def _scoreline(record: MatchRecord, home_score: int, away_score: int) -> str:
    """Format a scoreline for console output.

    Parameters
    ----------
    record : MatchRecord
        Match supplying the team names.
    home_score : int
        Home goals to show.
    away_score : int
        Away goals to show.

    Returns
    -------
    str
        Text such as ``"Home 2 - 1 Away"``.
    """
    return f"{record.home_team_name} {home_score} - {away_score} {record.away_team_name}"


def _print_event(event: MatchEvent) -> None:
    """Print a delivered event the way the live match feed does.

    Parameters
    ----------
    event : MatchEvent
        Event delivered by a replay session.
    """
    print(f"{event.minute}': {event.description}")


def _print_stats(stats: MatchStats) -> None:
    """Print the leaders and top performers of a replayed match.

    Parameters
    ----------
    stats : MatchStats
        Stats at the end of the replay.
    """
    if stats.top_scorer:
        print(f"Top scorer: {stats.top_scorer[0]} - {stats.top_scorer[1]} goals")
    if stats.top_assister:
        print(f"Top assister: {stats.top_assister[0]} - {stats.top_assister[1]} assists")
    performers = top_performers(stats)
    if performers:
        print("Top performers:")
        for player in performers:
            print(f"  {player.actor}: {player.summary()}")


def cmd_seal(args: argparse.Namespace) -> int:
    """Seal every record in a file and write the verified records.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed ``seal`` arguments.

    Returns
    -------
    int
        Process exit status.
    """
    debugger = MatchDebugger(args.debug_dir) if args.debug_dir else None
    try:
        verified = [seal_record(record, debugger=debugger) for record in load_records_from_json(args.input)]
        for item in verified:
            status = "verified" if item.integrity_verified else "INCONSISTENT"
            print(f"{item.record.id}: {status} {item.proof}")

        payload = json.dumps([verified_to_dict(item) for item in verified], indent=2, ensure_ascii=False)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as fh:
                fh.write(payload + "\n")
        else:
            print(payload)
    finally:
        if debugger:
            debugger.close()
    return 0


def cmd_reverify(args: argparse.Namespace) -> int:
    """Reverify every sealed record in a file.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed ``reverify`` arguments.

    Returns
    -------
    int
        ``0`` when every record is still valid, ``1`` otherwise.
    """
    debugger = MatchDebugger(args.debug_dir) if args.debug_dir else None
    all_valid = True
    try:
        for item in load_verified_from_json(args.input):
            finding = reverify(item, debugger=debugger)
            all_valid = all_valid and finding.still_valid
            if args.json:
                print(json.dumps({"id": item.record.id, **finding_to_dict(finding)}, ensure_ascii=False))
                continue
            print(f"{item.record.id}: {'still valid' if finding.still_valid else 'TAMPERED'}")
            for detail in finding.details:
                print(f"  - {detail}")
    finally:
        if debugger:
            debugger.close()
    return 0 if all_valid else 1


def cmd_replay(args: argparse.Namespace) -> int:
    """Replay one record in real time on the console.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed ``replay`` arguments.

    Returns
    -------
    int
        Process exit status.
    """
    records = load_records_from_json(args.input)
    if not 0 <= args.index < len(records):
        print(f"No match at index {args.index}; file holds {len(records)}", file=sys.stderr)
        return 2
    record = records[args.index]
    debugger = MatchDebugger(args.debug_dir) if args.debug_dir else None
    try:
        clock = RealTimeClock()
        session = ReplaySession.from_record(record, clock, speed=args.speed, debugger=debugger)

        # Seeking delivers events at the target itself, so only seek past kick-off.
        start = session.skip_to(args.start_ms) if args.start_ms > 0 else session.current_state()
        print(f"Replaying {record.id} at {session.speed:g}x from {int(session.cursor_ms) // 60000}'")
        print(f"Score: {_scoreline(record, start.home_score, start.away_score)}")

        def on_event(event: MatchEvent) -> None:
            _print_event(event)
            if event.is_goal:
                state = session.current_state()
                print(f"Score: {_scoreline(record, state.home_score, state.away_score)}")

        session.play(on_event)
        try:
            clock.run(until=lambda: session.run_state != "playing")
        except KeyboardInterrupt:
            print("\nReplay interrupted.")
            session.stop()
        final = session.current_state()
        print(f"\nFinal Score: {_scoreline(record, final.home_score, final.away_score)}")
        _print_stats(session.current_stats())
    finally:
        if debugger:
            debugger.close()
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Generate, seal, tamper with and instantly replay a sample match.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed ``demo`` arguments.

    Returns
    -------
    int
        Process exit status.
    """
    record = generate_match_record("demo-match", participant_id=args.participant, seed=args.seed)
    verified = seal_record(record)
    print(f"Sealed {_scoreline(record, record.home_score, record.away_score)}")
    print(f"Proof: {verified.proof}")
    print(f"Share code: {share_code(verified, record.participant_id)}")

    finding = reverify(verified)
    print(f"Reverify untouched record: {'still valid' if finding.still_valid else 'TAMPERED'}")
    inflated = dataclasses.replace(verified, record=dataclasses.replace(record, home_score=record.home_score + 1))
    finding = reverify(inflated)
    print(f"Reverify with inflated home score: {'still valid' if finding.still_valid else 'TAMPERED'}")
    for detail in finding.details:
        print(f"  - {detail}")

    clock = ManualClock()
    session = ReplaySession.from_record(record, clock, speed=64.0)
    print("\nGoals:")
    session.play(lambda event: _print_event(event) if event.is_goal else None)
    clock.run_until_idle()
    half = session.state_at(record.duration_ms // 2)
    print(f"Half-time: {_scoreline(record, half.home_score, half.away_score)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``matchseal`` command.

    Returns
    -------
    argparse.ArgumentParser
        Parser with ``seal``, ``reverify``, ``replay`` and ``demo`` commands.
    """
    parser = argparse.ArgumentParser(prog="matchseal", description="Match outcome integrity and replay")
    sub = parser.add_subparsers(dest="command", required=True)

    p_seal = sub.add_parser("seal", help="seal match records from a JSON file")
    p_seal.add_argument("input", help="JSON file with one match or a list of matches")
    p_seal.add_argument("-o", "--output", help="write verified records here instead of stdout")
    p_seal.add_argument("--debug-dir", help="directory for debug session logs")
    p_seal.set_defaults(func=cmd_seal)

    p_rev = sub.add_parser("reverify", help="re-check sealed match records")
    p_rev.add_argument("input", help="JSON file written by 'seal'")
    p_rev.add_argument("--json", action="store_true", help="print findings as JSON lines")
    p_rev.add_argument("--debug-dir", help="directory for debug session logs")
    p_rev.set_defaults(func=cmd_reverify)

    p_rep = sub.add_parser("replay", help="replay a match event log in real time")
    p_rep.add_argument("input", help="JSON file with one match or a list of matches")
    p_rep.add_argument("--index", type=int, default=0, help="which match in the file to replay")
    p_rep.add_argument("--speed", type=float, default=60.0, help="playback speed multiplier")
    p_rep.add_argument("--start-ms", type=int, default=0, help="simulated time to start from")
    p_rep.add_argument("--debug-dir", help="directory for debug session logs")
    p_rep.set_defaults(func=cmd_replay)

    p_demo = sub.add_parser("demo", help="run a self-contained demonstration")
    p_demo.add_argument("--seed", type=int, default=7, help="seed for the generated match")
    p_demo.add_argument("--participant", default="guest", help="participant identity to seal for")
    p_demo.set_defaults(func=cmd_demo)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface.

    Parameters
    ----------
    argv : Optional[List[str]]
        Arguments to parse; defaults to ``sys.argv[1:]``.

    Returns
    -------
    int
        Process exit status: ``0`` success, ``1`` tampered records found,
        ``2`` unreadable or invalid input.
    """
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (FileNotFoundError, json.JSONDecodeError, ValidationError, SchedulerMisuseError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
