# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0"]
# ///
"""Tests for the record store.

Validates:
  1. create assigns ids and a monotonically increasing seq
  2. find filters by equality, Between and OneOf, and orders results
  3. update / update_where / delete / delete_where
  4. Returned records are copies
  5. JsonRecordStore persists one JSON file per table with atomic writes
  6. Unreadable table files surface as PersistenceError
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.store import Between, JsonRecordStore, MemoryRecordStore, OneOf
from errors import PersistenceError, RecordNotFound


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryRecordStore()
    return JsonRecordStore(tmp_path / "store")


@pytest.fixture
def runners(store):
    for player, base in (("a", 1), ("b", 2), ("c", 3)):
        store.create("runners", {"game_id": "g1", "player_id": player, "current_base": base, "is_active": True})
    store.create("runners", {"game_id": "g2", "player_id": "d", "current_base": 1, "is_active": True})
    return store


class TestCreate:
    def test_assigns_id_and_seq(self, store):
        first = store.create("t", {"x": 1})
        second = store.create("t", {"x": 2})
        assert len(first["id"]) == 12
        assert second["seq"] == first["seq"] + 1

    def test_keeps_given_id(self, store):
        assert store.create("t", {"id": "fixed"})["id"] == "fixed"
        assert store.get("t", "fixed") is not None

    def test_duplicate_id(self, store):
        store.create("t", {"id": "dup"})
        with pytest.raises(PersistenceError):
            store.create("t", {"id": "dup"})

    def test_get_missing(self, store):
        assert store.get("t", "nope") is None


class TestFind:
    def test_equality(self, runners):
        assert len(runners.find("runners", game_id="g1")) == 3

    def test_between(self, runners):
        rows = runners.find("runners", game_id="g1", current_base=Between(2, 3))
        assert [r["player_id"] for r in rows] == ["b", "c"]

    def test_one_of(self, runners):
        rows = runners.find("runners", player_id=OneOf(["a", "d"]))
        assert {r["player_id"] for r in rows} == {"a", "d"}

    def test_order_descending(self, runners):
        rows = runners.find("runners", order_by="current_base", descending=True, game_id="g1")
        assert [r["current_base"] for r in rows] == [3, 2, 1]

    def test_empty_table(self, store):
        assert store.find("missing") == []

    def test_returns_copies(self, runners):
        row = runners.find("runners", player_id="a")[0]
        row["current_base"] = 3
        assert runners.find("runners", player_id="a")[0]["current_base"] == 1


class TestWrites:
    def test_update(self, runners):
        rid = runners.find("runners", player_id="a")[0]["id"]
        updated = runners.update("runners", rid, {"current_base": 2, "seq": 99})
        assert updated["current_base"] == 2
        assert updated["seq"] != 99

    def test_update_missing(self, store):
        with pytest.raises(RecordNotFound):
            store.update("runners", "nope", {"x": 1})

    def test_update_where(self, runners):
        n = runners.update_where("runners", {"is_active": False}, game_id="g1")
        assert n == 3
        assert runners.find("runners", is_active=True)[0]["player_id"] == "d"

    def test_delete(self, runners):
        rid = runners.find("runners", player_id="a")[0]["id"]
        assert runners.delete("runners", rid) is True
        assert runners.delete("runners", rid) is False

    def test_delete_where(self, runners):
        assert runners.delete_where("runners", game_id="g1") == 3
        assert len(runners.find("runners")) == 1


class TestJsonRecordStore:
    def test_one_file_per_table(self, tmp_path):
        store = JsonRecordStore(tmp_path)
        row = store.create("batting_events", {"game_id": "g1"})
        data = json.loads((tmp_path / "batting_events.json").read_text())
        assert data[row["id"]]["game_id"] == "g1"
        assert not (tmp_path / "batting_events.tmp").exists()

    def test_persists_across_instances(self, tmp_path):
        JsonRecordStore(tmp_path).create("games", {"id": "g1", "batting_first": False})
        assert JsonRecordStore(tmp_path).get("games", "g1")["batting_first"] is False

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "runners.json").write_text("{not json")
        with pytest.raises(PersistenceError):
            JsonRecordStore(tmp_path).find("runners")

    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(PersistenceError):
            JsonRecordStore(tmp_path).find("../escape")
