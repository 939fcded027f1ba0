# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0", "pydantic>=2.0"]
# ///
"""Tests for pitching records and pitching lines.

Validates:
  1. Innings pitched notation: outs after the point, roll-over at three
  2. One record per pitcher per game; saving again replaces it
  3. Record checks: earned runs, home runs, decisions, unknown pitcher
  4. ERA / WHIP / K/9 / BB/9 and team totals computed on outs
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.store import GAME_PITCHING_RECORDS, GAME_PLAYERS, MemoryRecordStore
from engine.pitching import (
    PitchingLine,
    delete_pitching_record,
    innings_to_outs,
    normalize_innings,
    outs_to_innings,
    pitching_lines,
    pitching_records,
    pitching_totals,
    save_pitching_record,
)
from errors import RecordNotFound, ValidationError
from models import PitchingRecord


@pytest.fixture
def store():
    store = MemoryRecordStore()
    store.create(GAME_PLAYERS, {"id": "ace", "game_id": "g1", "player_name": "Ace"})
    store.create(GAME_PLAYERS, {"id": "rel", "game_id": "g1", "player_name": "Reliever"})
    return store


class TestInningsNotation:
    @pytest.mark.parametrize("innings,outs", [(0, 0), (0.1, 1), (5.2, 17), (7.0, 21)])
    def test_innings_to_outs(self, innings, outs):
        assert innings_to_outs(innings) == outs
        assert outs_to_innings(outs) == pytest.approx(innings)

    @pytest.mark.parametrize("raw,expected", [(0.3, 1.0), (4.4, 5.1), (2.2, 2.2)])
    def test_normalize_rolls_over(self, raw, expected):
        assert normalize_innings(raw) == pytest.approx(expected)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            normalize_innings(-1)


class TestSaveRecord:
    def test_create(self, store):
        record = save_pitching_record(store, "g1", {"player_id": "ace", "innings_pitched": 5.4, "strikeouts": 6})
        assert record.id
        assert record.innings_pitched == pytest.approx(6.1)
        assert [r.player_id for r in pitching_records(store, "g1")] == ["ace"]

    def test_save_again_replaces(self, store):
        first = save_pitching_record(store, "g1", {"player_id": "ace", "innings_pitched": 3})
        second = save_pitching_record(store, "g1", {"player_id": "ace", "innings_pitched": 6, "walks": 2})
        assert second.id == first.id
        assert len(store.find(GAME_PITCHING_RECORDS)) == 1
        assert pitching_records(store, "g1")[0].walks == 2

    def test_unknown_pitcher(self, store):
        with pytest.raises(RecordNotFound):
            save_pitching_record(store, "g1", {"player_id": "nobody"})

    def test_pitcher_from_other_game(self, store):
        store.create(GAME_PLAYERS, {"id": "visitor", "game_id": "g2", "player_name": "Visitor"})
        with pytest.raises(RecordNotFound):
            save_pitching_record(store, "g1", {"player_id": "visitor"})

    @pytest.mark.parametrize("data,parameter", [
        ({"runs_allowed": 1, "earned_runs": 2}, "earned_runs"),
        ({"hits_allowed": 0, "home_runs_allowed": 1}, "home_runs_allowed"),
        ({"win": True, "loss": True}, "win"),
        ({"win": True, "save": True}, "save"),
        ({"strikeouts": -1}, "strikeouts"),
    ])
    def test_invalid_record(self, store, data, parameter):
        with pytest.raises(ValidationError) as exc_info:
            save_pitching_record(store, "g1", {"player_id": "ace", **data})
        assert exc_info.value.parameter == parameter
        assert store.find(GAME_PITCHING_RECORDS) == []

    def test_delete(self, store):
        record = save_pitching_record(store, "g1", {"player_id": "ace"})
        delete_pitching_record(store, "g1", record.id)
        assert pitching_records(store, "g1") == []
        with pytest.raises(RecordNotFound):
            delete_pitching_record(store, "g1", record.id)


class TestPitchingLines:
    def test_rates(self):
        line = PitchingLine()
        line.add(PitchingRecord(
            game_id="g1", player_id="ace", innings_pitched=6.0,
            hits_allowed=5, earned_runs=2, runs_allowed=3, strikeouts=6, walks=1,
        ))
        assert line.era == 3.0
        assert line.whip == 1.0
        assert line.k_per_nine == 9.0
        assert line.bb_per_nine == 1.5

    def test_no_outs_means_zero_rates(self):
        line = PitchingLine()
        line.add(PitchingRecord(game_id="g1", player_id="ace", earned_runs=2, runs_allowed=2))
        assert line.era == 0.0
        assert line.whip == 0.0

    def test_lines_and_totals(self, store):
        save_pitching_record(store, "g1", {"player_id": "ace", "innings_pitched": 5.2, "strikeouts": 7, "win": True})
        save_pitching_record(store, "g1", {"player_id": "rel", "innings_pitched": 1.2, "walks": 1, "save": False})
        records = pitching_records(store, "g1")
        lines = pitching_lines(records, {"ace": "Ace"})
        assert [line.name for line in lines] == ["Ace", "rel"]
        assert lines[0].to_dict()["W"] is True

        total = pitching_totals(records)
        assert total.innings_pitched == pytest.approx(7.1)
        assert total.to_dict()["K"] == 7
        assert total.to_dict()["BB"] == 1
