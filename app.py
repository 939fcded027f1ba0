# /// script
# requires-python = ">=3.12"
# dependencies = ["flask>=3.0", "pydantic>=2.0"]
# ///
"""JSON API for live game scoring.

Exposes the batting event processor, the lineup assignment engine,
substitutions, pitching records and the batting and pitching lines over HTTP.  Every response uses the envelope from
:mod:`api.response`.

Usage:
    uv run app.py
    SCOREBOOK_DATA_DIR=/tmp/scorebook PORT=5050 uv run app.py
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

import config
from api.response import error_from_exception, success_response
from api.validation import (
    OpponentRunsInput,
    PositionChangeInput,
    RecordPlateAppearanceInput,
    RunnerMoveInput,
    SaveLineupInput,
    SubstitutionInput,
    require_object,
    validate_input,
)
from data.store import JsonRecordStore, RecordStore
from engine.lineup import load_lineup, load_template, save_lineup
from engine.pitching import (
    delete_pitching_record,
    pitching_lines,
    pitching_records,
    pitching_totals,
    save_pitching_record,
)
from engine.processor import ScoringEngine
from engine.stats import batting_lines, team_totals
from engine.substitution import (
    bench_players,
    change_position,
    substitute_player,
    substitution_history,
)
from errors import ScorebookError, ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__)

# Replaced in tests with a MemoryRecordStore.
STORE: Optional[RecordStore] = None


def get_store() -> RecordStore:
    global STORE
    if STORE is None:
        STORE = JsonRecordStore(config.get_data_dir())
        logger.info("Using record store at %s", STORE.root_dir)
    return STORE


def _engine(game_id: str) -> ScoringEngine:
    return ScoringEngine(get_store(), game_id)


def _ok(data):
    return jsonify(success_response(request.endpoint or "unknown", data))


@app.errorhandler(ScorebookError)
def handle_scorebook_error(exc: ScorebookError):
    body, status = error_from_exception(request.endpoint or "unknown", exc)
    if status >= 500:
        logger.error("%s failed: %s", request.endpoint, exc.message)
    return jsonify(body), status


# ---------------------------------------------------------------------------
# Plate appearances
# ---------------------------------------------------------------------------

@app.route("/api/games/<game_id>/plate-appearances", methods=["POST"])
def record_plate_appearance(game_id: str):
    body = validate_input(RecordPlateAppearanceInput, request.get_json(silent=True))
    result = _engine(game_id).record(body, out_runner_ids=body.out_runner_ids)
    return _ok(result.to_dict())


@app.route("/api/games/<game_id>/plate-appearances/<event_id>", methods=["DELETE"])
def delete_plate_appearance(game_id: str, event_id: str):
    return _ok(_engine(game_id).delete_event(event_id))


@app.route("/api/games/<game_id>/plate-appearances/<event_id>/resume", methods=["POST"])
def resume_plate_appearance(game_id: str, event_id: str):
    return _ok(_engine(game_id).resume(event_id).to_dict())


# ---------------------------------------------------------------------------
# Innings and runners
# ---------------------------------------------------------------------------

@app.route("/api/games/<game_id>/innings/<int:inning>")
def inning_state(game_id: str, inning: int):
    return _ok(_engine(game_id).inning_state(inning))


@app.route("/api/games/<game_id>/innings/<int:inning>/opponent-runs", methods=["POST"])
def opponent_runs(game_id: str, inning: int):
    body = validate_input(OpponentRunsInput, request.get_json(silent=True))
    score = _engine(game_id).record_opponent_runs(inning, body.runs)
    return _ok(score.model_dump(mode="json"))


@app.route("/api/games/<game_id>/runners/<runner_id>/<action>", methods=["POST"])
def move_runner(game_id: str, runner_id: str, action: str):
    engine = _engine(game_id)
    if action == "score":
        return _ok(engine.score_runner(runner_id))
    if action not in ("steal", "advance"):
        raise ValidationError(f"Unknown runner action {action!r}", parameter="action")
    body = validate_input(RunnerMoveInput, request.get_json(silent=True))
    if action == "steal":
        return _ok(engine.steal_base(runner_id, body.to_base))
    return _ok(engine.advance_runner(runner_id, body.to_base))


@app.route("/api/games/<game_id>/scoreboard")
def scoreboard(game_id: str):
    return _ok(_engine(game_id).scoreboard())


@app.route("/api/games/<game_id>/stats")
def stats(game_id: str):
    engine = _engine(game_id)
    events = engine.game_events()
    names = {p.id: p.player_name for p in engine.game_players() if p.id}
    pitchers = pitching_records(get_store(), game_id)
    return _ok({
        "batters": [line.to_dict() for line in batting_lines(events, names)],
        "team": team_totals(events).to_dict(),
        "pitchers": [line.to_dict() for line in pitching_lines(pitchers, names)],
        "pitching_team": pitching_totals(pitchers).to_dict(),
    })


# ---------------------------------------------------------------------------
# Lineup
# ---------------------------------------------------------------------------

@app.route("/api/games/<game_id>/lineup", methods=["GET"])
def get_lineup(game_id: str):
    team_id = request.args.get("team_id", "").strip()
    if not team_id:
        raise ValidationError("team_id query parameter is required", parameter="team_id")
    store = get_store()
    template = load_template(store, team_id)
    return _ok({
        "lineup": load_lineup(store, game_id, team_id).model_dump(mode="json"),
        "template_version": template.version if template else 0,
    })


@app.route("/api/games/<game_id>/lineup", methods=["PUT"])
def put_lineup(game_id: str):
    body = validate_input(SaveLineupInput, request.get_json(silent=True))
    result = save_lineup(
        get_store(), game_id, body.team_id, body.lineup,
        expected_template_version=body.expected_template_version,
    )
    return _ok(result.to_dict())


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------

@app.route("/api/games/<game_id>/substitutions", methods=["GET"])
def list_substitutions(game_id: str):
    store = get_store()
    return _ok({
        "substitutions": [s.model_dump(mode="json") for s in substitution_history(store, game_id)],
        "bench": [p.model_dump(mode="json") for p in bench_players(store, game_id)],
    })


@app.route("/api/games/<game_id>/substitutions", methods=["POST"])
def create_substitution(game_id: str):
    body = validate_input(SubstitutionInput, request.get_json(silent=True))
    record = substitute_player(
        get_store(), game_id, body.out_player_id, body.in_player_id, body.inning,
        substitution_type=body.substitution_type, new_position=body.new_position,
    )
    return _ok(record.model_dump(mode="json"))


@app.route("/api/games/<game_id>/players/<player_id>/position", methods=["POST"])
def move_player(game_id: str, player_id: str):
    body = validate_input(PositionChangeInput, request.get_json(silent=True))
    player = change_position(get_store(), game_id, player_id, body.position)
    return _ok(player.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Pitching
# ---------------------------------------------------------------------------

@app.route("/api/games/<game_id>/pitching", methods=["GET"])
def list_pitching(game_id: str):
    records = pitching_records(get_store(), game_id)
    return _ok({
        "records": [r.model_dump(mode="json") for r in records],
        "team": pitching_totals(records).to_dict(),
    })


@app.route("/api/games/<game_id>/pitching", methods=["POST"])
def save_pitching(game_id: str):
    data = require_object(request.get_json(silent=True))
    return _ok(save_pitching_record(get_store(), game_id, data).model_dump(mode="json"))


@app.route("/api/games/<game_id>/pitching/<record_id>", methods=["DELETE"])
def delete_pitching(game_id: str, record_id: str):
    delete_pitching_record(get_store(), game_id, record_id)
    return _ok({"deleted": record_id})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, config.get_log_level(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 5050))
    app.run(debug=True, host="0.0.0.0", port=port)
