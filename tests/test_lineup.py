# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0", "pydantic>=2.0"]
# ///
"""Tests for the lineup assignment engine.

Validates:
  1. Slots resolve from saved game players, then the default template, then empty
  2. The designated hitter is inferred from slot 10 or a DH position
  3. A member appears at most once; a fielding position is held by one starter
  4. Edit operations: swap, clear, toggle DH, substitutes, attendance pre-fill
  5. Saving updates game players in place (stable ids) and replaces the team template
  6. A template failure or version conflict never rolls back game players
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.store import DEFAULT_LINEUPS, GAME_PLAYERS, MemoryRecordStore
from engine.lineup import (
    LineupEditor,
    build_lineup,
    load_lineup,
    load_template,
    save_lineup,
    validate_lineup,
)
from errors import PersistenceError, ValidationError
from models import (
    DefaultLineupTemplate,
    FieldingPosition,
    GamePlayer,
    Lineup,
    LineupSlot,
    Substitute,
    TeamMember,
)

POSITIONS = ["P", "C", "1B", "2B", "3B", "SS", "LF", "CF", "RF"]


class FailingStore(MemoryRecordStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_table = None

    def create(self, table, record):
        if table == self.fail_table:
            raise PersistenceError(f"write to {table} failed", table=table)
        return super().create(table, record)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def members():
    return [
        TeamMember(member_id="m1", display_name="Sato"),
        TeamMember(member_id="m2", display_name="Suzuki"),
        TeamMember(member_id="m3"),
        TeamMember(member_id="m4", display_name="Tanaka"),
    ]


@pytest.fixture
def full_lineup():
    return Lineup(
        starters=[
            LineupSlot(batting_order=n, player_name=f"Player {n}", position=POSITIONS[n - 1])
            for n in range(1, 10)
        ],
        substitutes=[Substitute(player_name="Bench")],
    )


@pytest.fixture
def editor(members):
    return LineupEditor(build_lineup([], None), members)


def _game_players(n=9, **extra):
    return [
        GamePlayer(
            id=f"gp{i}", game_id="g1", player_name=f"Saved {i}",
            is_starter=True, batting_order=i, **extra,
        )
        for i in range(1, n + 1)
    ]


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

class TestBuildLineup:
    def test_empty(self):
        lineup = build_lineup([], None)
        assert [s.batting_order for s in lineup.starters] == list(range(1, 10))
        assert all(s.is_empty for s in lineup.starters)
        assert lineup.use_dh is False
        assert lineup.substitutes == []

    def test_existing_game_players_win(self):
        players = _game_players() + [GamePlayer(game_id="g1", player_name="Bench")]
        template = DefaultLineupTemplate(
            team_id="t1",
            starters=[LineupSlot(batting_order=1, player_name="Template 1")],
            substitutes=[Substitute(player_name="Template bench")],
        )
        lineup = build_lineup(players, template)
        assert lineup.starters[0].player_name == "Saved 1"
        assert [s.player_name for s in lineup.substitutes] == ["Bench"]

    def test_template_used_without_game_players(self):
        template = DefaultLineupTemplate(
            team_id="t1",
            starters=[LineupSlot(batting_order=1, member_id="m1", player_name="Sato", position="SS")],
            substitutes=[Substitute(player_name="Kato")],
        )
        lineup = build_lineup([], template)
        assert lineup.starters[0].member_id == "m1"
        assert lineup.starters[0].position == FieldingPosition.SS
        assert lineup.starters[1].is_empty
        assert [s.player_name for s in lineup.substitutes] == ["Kato"]

    def test_slot_falls_back_to_template(self):
        players = [GamePlayer(game_id="g1", player_name="Saved", is_starter=True, batting_order=1)]
        template = DefaultLineupTemplate(
            team_id="t1",
            starters=[LineupSlot(batting_order=2, player_name="Template 2")],
        )
        lineup = build_lineup(players, template)
        assert lineup.starters[0].player_name == "Saved"
        assert lineup.starters[1].player_name == "Template 2"

    def test_dh_inferred_from_slot_ten(self):
        players = _game_players(10)
        lineup = build_lineup(players, None)
        assert lineup.use_dh is True
        assert len(lineup.starters) == 10

    def test_dh_inferred_from_position(self):
        template = DefaultLineupTemplate(
            team_id="t1",
            starters=[LineupSlot(batting_order=10, player_name="Hitter", position="DH")],
        )
        lineup = build_lineup([], template)
        assert lineup.use_dh is True
        assert lineup.starters[9].player_name == "Hitter"

    def test_forced_dh_adds_empty_dh_slot(self):
        lineup = build_lineup([], None, use_dh=True)
        assert len(lineup.starters) == 10
        assert lineup.starters[9].position == FieldingPosition.DH
        assert all(s.position is None for s in lineup.starters[:9])


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

class TestMembers:
    def test_assign_fills_name(self, editor):
        slot = editor.assign_member(1, "m1")
        assert slot.player_name == "Sato"
        assert slot.member_id == "m1"

    def test_unnamed_fallback(self, editor):
        assert editor.assign_member(2, "m3").player_name == "Unnamed"

    def test_member_used_elsewhere_rejected(self, editor):
        editor.assign_member(1, "m1")
        with pytest.raises(ValidationError) as exc_info:
            editor.assign_member(2, "m1")
        assert exc_info.value.parameter == "member_id"

    def test_reassign_same_slot(self, editor):
        editor.assign_member(1, "m1")
        assert editor.assign_member(1, "m1").member_id == "m1"

    def test_member_on_bench_rejected(self, editor):
        editor.add_substitute(member_id="m2")
        with pytest.raises(ValidationError):
            editor.assign_member(1, "m2")

    def test_unknown_member(self, editor):
        with pytest.raises(ValidationError):
            editor.assign_member(1, "nobody")

    def test_free_text_name_clears_member(self, editor):
        editor.assign_member(1, "m1")
        slot = editor.set_player_name(1, "  Guest  ")
        assert slot.player_name == "Guest"
        assert slot.member_id is None
        # the member is free again
        assert editor.assign_member(2, "m1").member_id == "m1"

    def test_member_options(self, editor):
        editor.assign_member(1, "m1")
        editor.assign_member(2, "m2")
        ids = [m.member_id for m in editor.member_options(1)]
        assert "m1" in ids
        assert "m2" not in ids
        assert set(ids) == {"m1", "m3", "m4"}


class TestPositions:
    def test_duplicate_position_rejected(self, editor):
        editor.set_position(1, "SS")
        with pytest.raises(ValidationError):
            editor.set_position(2, "SS")

    def test_dh_only_on_slot_ten(self, editor):
        with pytest.raises(ValidationError):
            editor.set_position(3, "DH")

    def test_unknown_position(self, editor):
        with pytest.raises(ValidationError):
            editor.set_position(1, "XX")

    def test_clear_position(self, editor):
        editor.set_position(1, "C")
        assert editor.set_position(1, None).position is None
        editor.set_position(2, "C")

    def test_position_options(self, editor):
        editor.set_position(1, "P")
        options = editor.position_options(2)
        assert FieldingPosition.P not in options
        assert FieldingPosition.DH not in options
        assert FieldingPosition.P in editor.position_options(1)

    def test_dh_offered_on_slot_ten(self, editor):
        editor.toggle_dh()
        assert FieldingPosition.DH in editor.position_options(10)


class TestEditing:
    def test_toggle_dh(self, editor):
        assert editor.toggle_dh() is True
        assert len(editor.lineup.starters) == 10
        assert editor.lineup.starters[-1].position == FieldingPosition.DH
        assert editor.toggle_dh() is False
        assert len(editor.lineup.starters) == 9

    def test_swap_slots(self, editor):
        editor.assign_member(1, "m1")
        editor.set_position(1, "SS")
        editor.set_player_name(2, "Guest")
        editor.set_position(2, "CF")
        editor.swap_slots(1, 2)
        first, second = editor.lineup.starters[0], editor.lineup.starters[1]
        assert (first.player_name, first.position, first.member_id) == ("Guest", FieldingPosition.CF, None)
        assert (second.player_name, second.position, second.member_id) == ("Sato", FieldingPosition.SS, "m1")

    def test_swap_keeps_dh_on_slot_ten(self, editor):
        editor.toggle_dh()
        editor.set_player_name(10, "Slugger")
        editor.set_player_name(1, "Leadoff")
        editor.set_position(1, "CF")
        editor.swap_slots(1, 10)
        assert editor.lineup.starters[0].player_name == "Slugger"
        assert editor.lineup.starters[0].position == FieldingPosition.CF
        assert editor.lineup.starters[9].position == FieldingPosition.DH

    def test_clear_slot(self, editor):
        editor.assign_member(1, "m1")
        editor.set_position(1, "SS")
        slot = editor.clear_slot(1)
        assert slot.is_empty
        assert slot.position is None

    def test_fill_from_members(self, editor):
        editor.assign_member(2, "m2")
        filled = editor.fill_from_members(["m1", "m2", "m4", "ghost"])
        assert filled == 2
        names = [s.player_name for s in editor.lineup.starters[:3]]
        assert names == ["Sato", "Suzuki", "Tanaka"]

    def test_substitutes(self, editor):
        sub = editor.add_substitute(member_id="m4")
        assert sub.player_name == "Tanaka"
        editor.add_substitute("Walk-on")
        assert editor.remove_substitute(0).member_id == "m4"
        assert [s.player_name for s in editor.lineup.substitutes] == ["Walk-on"]

    def test_substitute_needs_name(self, editor):
        with pytest.raises(ValidationError):
            editor.add_substitute("  ")

    def test_remove_missing_substitute(self, editor):
        with pytest.raises(ValidationError):
            editor.remove_substitute(3)

    def test_editor_works_on_a_copy(self, members):
        lineup = build_lineup([], None)
        LineupEditor(lineup, members).assign_member(1, "m1")
        assert lineup.starters[0].is_empty


class TestValidateLineup:
    def test_valid(self, full_lineup):
        validate_lineup(full_lineup)

    def test_missing_batting_order(self, full_lineup):
        full_lineup.starters.pop()
        with pytest.raises(ValidationError, match="Batting orders"):
            validate_lineup(full_lineup)

    def test_duplicate_member_across_bench(self, full_lineup):
        full_lineup.starters[0].member_id = "m1"
        full_lineup.substitutes.append(Substitute(player_name="Again", member_id="m1"))
        with pytest.raises(ValidationError):
            validate_lineup(full_lineup)

    def test_duplicate_position(self, full_lineup):
        full_lineup.starters[1].position = FieldingPosition.P
        with pytest.raises(ValidationError):
            validate_lineup(full_lineup)


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------

class TestSaveLineup:
    def test_writes_game_players_and_template(self, full_lineup):
        store = MemoryRecordStore()
        result = save_lineup(store, "g1", "t1", full_lineup)
        assert result.template_saved
        assert result.template_version == 1
        rows = store.find(GAME_PLAYERS, game_id="g1")
        assert len(rows) == 10
        assert sum(1 for r in rows if r["is_starter"]) == 9
        assert load_template(store, "t1").starters[0].player_name == "Player 1"

    def test_empty_slots_not_saved(self):
        store = MemoryRecordStore()
        lineup = build_lineup([], None)
        lineup.starters[0].player_name = "Only"
        result = save_lineup(store, "g1", "t1", lineup)
        assert [p.player_name for p in result.game_players] == ["Only"]

    def test_resave_replaces_rows(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        full_lineup.substitutes = []
        result = save_lineup(store, "g1", "t1", full_lineup)
        assert len(store.find(GAME_PLAYERS, game_id="g1")) == 9
        assert len(store.find(DEFAULT_LINEUPS, team_id="t1")) == 1
        assert result.template_version == 2

    def test_resave_keeps_player_ids(self, full_lineup):
        store = MemoryRecordStore()
        first = save_lineup(store, "g1", "t1", full_lineup)
        ids = {p.batting_order: p.id for p in first.game_players if p.batting_order}

        full_lineup.starters[0], full_lineup.starters[1] = (
            full_lineup.starters[1].model_copy(update={"batting_order": 1}),
            full_lineup.starters[0].model_copy(update={"batting_order": 2}),
        )
        full_lineup.starters[8].player_name = "Newcomer"
        second = save_lineup(store, "g1", "t1", full_lineup)
        by_name = {p.player_name: p for p in second.game_players}

        assert by_name["Player 2"].id == ids[2]
        assert by_name["Player 2"].batting_order == 1
        assert by_name["Player 1"].id == ids[1]
        assert by_name["Player 5"].id == ids[5]
        assert by_name["Newcomer"].id not in ids.values()
        assert len(store.find(GAME_PLAYERS, game_id="g1")) == 10

    def test_other_games_untouched(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        save_lineup(store, "g2", "t1", full_lineup)
        assert len(store.find(GAME_PLAYERS, game_id="g1")) == 10

    def test_invalid_lineup_writes_nothing(self, full_lineup):
        store = MemoryRecordStore()
        full_lineup.starters[1].position = FieldingPosition.P
        with pytest.raises(ValidationError):
            save_lineup(store, "g1", "t1", full_lineup)
        assert store.find(GAME_PLAYERS) == []

    def test_template_failure_keeps_game_players(self, full_lineup):
        store = FailingStore()
        save_lineup(store, "g1", "t1", full_lineup)
        store.fail_table = DEFAULT_LINEUPS
        full_lineup.starters[0].player_name = "Changed"
        result = save_lineup(store, "g1", "t1", full_lineup)
        assert result.template_saved is False
        assert "failed" in result.template_error
        assert store.find(GAME_PLAYERS, game_id="g1", batting_order=1)[0]["player_name"] == "Changed"
        assert load_template(store, "t1").starters[0].player_name == "Player 1"

    def test_game_player_failure_raises(self, full_lineup):
        store = FailingStore()
        store.fail_table = GAME_PLAYERS
        with pytest.raises(PersistenceError):
            save_lineup(store, "g1", "t1", full_lineup)

    def test_version_conflict_skips_template(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        full_lineup.starters[0].player_name = "Changed"
        result = save_lineup(store, "g2", "t1", full_lineup, expected_template_version=0)
        assert result.template_saved is False
        assert result.template_version == 1
        assert len(result.game_players) == 10
        assert load_template(store, "t1").starters[0].player_name == "Player 1"

    def test_matching_version_saves(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        result = save_lineup(store, "g1", "t1", full_lineup, expected_template_version=1)
        assert result.template_saved
        assert result.template_version == 2

    def test_load_lineup_round_trip(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        lineup = load_lineup(store, "g1", "t1")
        assert [s.player_name for s in lineup.starters] == [f"Player {n}" for n in range(1, 10)]
        assert [s.player_name for s in lineup.substitutes] == ["Bench"]

    def test_new_game_starts_from_template(self, full_lineup):
        store = MemoryRecordStore()
        save_lineup(store, "g1", "t1", full_lineup)
        lineup = load_lineup(store, "g2", "t1")
        assert lineup.starters[4].player_name == "Player 5"
