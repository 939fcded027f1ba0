# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Replay a JSON scoresheet through the scoring engine.

The scoresheet holds the game setup, the lineup and the plays in order:

    {
      "game_id": "g1", "team_id": "t1", "batting_first": true,
      "lineup": {"starters": [{"batting_order": 1, "player_name": "Sato",
                               "position": "SS"}, ...],
                 "substitutes": [], "use_dh": false},
      "plays": [
        {"inning": 1, "batter": 1, "result": "single"},
        {"inning": 1, "steal": 1, "to_base": 2},
        {"inning": 1, "batter": 2, "result": "groundout",
         "position": "SS", "out_runners": [1]},
        {"inning": 2, "substitute": 9, "in": "Kato", "type": "defensive_change"}
      ],
      "opponent_runs": {"1": 0, "2": 2},
      "pitching": [{"pitcher": "Kato", "innings_pitched": 2, "earned_runs": 2,
                    "runs_allowed": 2}]
    }

Batters and runners are referred to by batting order; substitutes and
pitchers by name.

Usage:
    uv run scorebook.py data/sample_scoresheet.json
    uv run scorebook.py sheet.json --data-dir /tmp/scorebook --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

import config
from data.store import GAMES, RUNNERS, JsonRecordStore, MemoryRecordStore, RecordStore
from engine.lineup import save_lineup
from engine.pitching import pitching_lines, pitching_records, pitching_totals, save_pitching_record
from engine.processor import ScoringEngine
from engine.stats import batting_lines, team_totals
from engine.substitution import game_players, substitute_player
from errors import ScorebookError, ValidationError
from models import GamePlayer, Lineup, PlateAppearance

logger = logging.getLogger(__name__)


def _runner_id(store: RecordStore, game_id: str, inning: int, player: GamePlayer) -> str:
    rows = store.find(RUNNERS, game_id=game_id, inning=inning, player_id=player.id, is_active=True)
    if not rows:
        raise ValidationError(
            f"{player.player_name} is not on base in inning {inning}", parameter="out_runners",
        )
    return rows[-1]["id"]


def replay(sheet: dict, store: RecordStore) -> dict:
    """Run every play of *sheet* and return the final game summary."""
    game_id = sheet.get("game_id", "scoresheet")
    if store.get(GAMES, game_id) is None:
        store.create(GAMES, {"id": game_id, "batting_first": sheet.get("batting_first", True)})

    try:
        lineup = Lineup.model_validate(sheet.get("lineup", {}))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from None
    saved = save_lineup(store, game_id, sheet.get("team_id", game_id), lineup)
    by_order = {p.batting_order: p for p in saved.game_players if p.is_starter}

    engine = ScoringEngine(store, game_id, max_innings=sheet.get("max_innings"))

    def player_at(order) -> GamePlayer:
        if order not in by_order:
            raise ValidationError(f"Nobody bats {order} in this lineup", parameter="batter")
        return by_order[order]

    def player_named(name, parameter) -> GamePlayer:
        for p in game_players(store, game_id):
            if p.player_name == name:
                return p
        raise ValidationError(f"No player named {name!r}", parameter=parameter)

    for n, play in enumerate(sheet.get("plays", []), start=1):
        inning = play.get("inning", 1)
        if "steal" in play:
            runner = player_at(play["steal"])
            engine.steal_base(_runner_id(store, game_id, inning, runner), play["to_base"])
            continue
        if "substitute" in play:
            leaving = player_at(play["substitute"])
            incoming = player_named(play.get("in"), "in")
            swap = substitute_player(
                store, game_id, leaving.id, incoming.id, inning,
                substitution_type=play.get("type", "player_change"),
                new_position=play.get("position"),
            )
            by_order[swap.batting_order] = player_named(incoming.player_name, "in")
            logger.debug("Play %d: %s", n, swap.description)
            continue
        batter = player_at(play.get("batter"))
        out_ids = [
            _runner_id(store, game_id, inning, player_at(order))
            for order in play.get("out_runners", [])
        ]
        pa = PlateAppearance(
            inning=inning,
            player_id=batter.id,
            player_name=batter.player_name,
            batting_order=batter.batting_order,
            result=play.get("result"),
            error=play.get("error", False),
            position=play.get("position"),
            rbi=play.get("rbi", 0),
        )
        result = engine.record(pa, out_runner_ids=out_ids)
        for anomaly in result.anomalies:
            logger.warning("Play %d: %s", n, anomaly.message)
        logger.debug(
            "Play %d: %s %s (%s) outs=%d runs=%d",
            n, batter.player_name, result.event.result.value,
            result.event.annotation.display(), result.outs, result.inning_runs,
        )

    for inning, runs in sorted(sheet.get("opponent_runs", {}).items(), key=lambda kv: int(kv[0])):
        engine.record_opponent_runs(int(inning), runs)

    for entry in sheet.get("pitching", []):
        entry = dict(entry)
        pitcher = player_named(entry.pop("pitcher", None), "pitcher")
        save_pitching_record(store, game_id, {**entry, "player_id": pitcher.id})

    events = engine.game_events()
    names = {p.id: p.player_name for p in game_players(store, game_id)}
    pitchers = pitching_records(store, game_id)
    return {
        "scoreboard": engine.scoreboard(),
        "batters": [line.to_dict() for line in batting_lines(events, names)],
        "team": team_totals(events).to_dict(),
        "pitchers": [line.to_dict() for line in pitching_lines(pitchers, names)],
        "pitching_team": pitching_totals(pitchers).to_dict(),
    }


def format_report(summary: dict) -> str:
    board = summary["scoreboard"]
    innings = board["innings"]
    lines = []
    header = "      " + " ".join(f"{r['inning']:>2}" for r in innings) + "    R"
    lines.append(header)
    for label, key in (("Top", "top"), ("Bot", "bottom")):
        runs = [r[key] for r in innings]
        lines.append(f"{label:<6}" + " ".join(f"{x:>2}" for x in runs) + f"  {sum(runs):>3}")
    lines.append("")
    lines.append(f"{'#':>2} {'Batter':<16} {'AB':>3} {'H':>3} {'R':>3} {'RBI':>3} {'BB':>3} {'K':>3} {'AVG':>6}")
    for b in summary["batters"]:
        lines.append(
            f"{b['batting_order']:>2} {b['name'][:16]:<16} {b['AB']:>3} {b['H']:>3} {b['R']:>3} "
            f"{b['RBI']:>3} {b['BB']:>3} {b['K']:>3} {b['AVG']:>6.3f}"
        )
    t = summary["team"]
    lines.append(
        f"   {'Team':<16} {t['AB']:>3} {t['H']:>3} {t['R']:>3} "
        f"{t['RBI']:>3} {t['BB']:>3} {t['K']:>3} {t['AVG']:>6.3f}"
    )
    if summary.get("pitchers"):
        lines.append("")
        lines.append(f"   {'Pitcher':<16} {'IP':>5} {'H':>3} {'R':>3} {'ER':>3} {'BB':>3} {'K':>3} {'ERA':>6}")
        for p in summary["pitchers"]:
            lines.append(
                f"   {p['name'][:16]:<16} {p['IP']:>5.1f} {p['H']:>3} {p['R']:>3} "
                f"{p['ER']:>3} {p['BB']:>3} {p['K']:>3} {p['ERA']:>6.2f}"
            )
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay a JSON scoresheet and print the line score and batting lines."
    )
    parser.add_argument("scoresheet", type=Path, help="Path to the scoresheet JSON file.")
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Persist to a JSON record store here instead of memory.",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Log every play.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.get_log_level(), logging.INFO),
        format="%(levelname)s: %(message)s",
    )

    try:
        sheet = json.loads(args.scoresheet.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error: could not read {args.scoresheet}: {exc}", file=sys.stderr)
        return 1

    store: RecordStore = JsonRecordStore(args.data_dir) if args.data_dir else MemoryRecordStore()
    try:
        summary = replay(sheet, store)
    except ScorebookError as exc:
        print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(format_report(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
