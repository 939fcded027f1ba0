# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Pitching records and pitching lines.

Pitchers are scored by hand, one record per pitcher per game.  Innings
pitched are kept in scorebook notation (5.2 = five innings and two outs);
arithmetic is done on outs.

    ERA   = earned runs * 9 / innings
    WHIP  = (walks + hits) / innings
    K/9   = strikeouts * 9 / innings
    BB/9  = walks * 9 / innings

Rates are 0.0 when no out has been recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from data.store import GAME_PITCHING_RECORDS, GAME_PLAYERS, RecordStore
from errors import PersistenceError, RecordNotFound, ValidationError
from models import PitchingRecord

logger = logging.getLogger(__name__)

OUTS_PER_INNING = 3


def innings_to_outs(innings: float) -> int:
    """5.2 -> 17.  A digit of 3 or more after the point rolls over."""
    whole = int(innings)
    return whole * OUTS_PER_INNING + round((innings - whole) * 10)


def outs_to_innings(outs: int) -> float:
    """17 -> 5.2"""
    return outs // OUTS_PER_INNING + (outs % OUTS_PER_INNING) / 10


def normalize_innings(innings: float) -> float:
    """Roll extra outs into whole innings: 0.3 -> 1.0, 4.4 -> 5.1."""
    if innings < 0:
        raise ValidationError("Innings pitched cannot be negative", parameter="innings_pitched")
    return outs_to_innings(innings_to_outs(innings))


def _rate(num: float, outs: int, per: int = 9) -> float:
    if not outs:
        return 0.0
    return round(num * per * OUTS_PER_INNING / outs, 2)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def pitching_records(store: RecordStore, game_id: str) -> list[PitchingRecord]:
    return [PitchingRecord.model_validate(r) for r in store.find(GAME_PITCHING_RECORDS, game_id=game_id)]


def _check_record(record: PitchingRecord) -> None:
    if record.earned_runs > record.runs_allowed:
        raise ValidationError("Earned runs cannot exceed runs allowed", parameter="earned_runs")
    if record.home_runs_allowed > record.hits_allowed:
        raise ValidationError("Home runs allowed cannot exceed hits allowed", parameter="home_runs_allowed")
    if record.win and record.loss:
        raise ValidationError("A pitcher cannot be credited with both a win and a loss", parameter="win")
    if record.save and record.win:
        raise ValidationError("A pitcher cannot be credited with both a win and a save", parameter="save")


def save_pitching_record(store: RecordStore, game_id: str, data: Mapping[str, Any]) -> PitchingRecord:
    """Create or replace the record of one pitcher in *game_id*.

    Raises:
        ValidationError: bad numbers or decisions.
        RecordNotFound: the pitcher is not a player of this game.
    """
    try:
        record = PitchingRecord.model_validate({**data, "game_id": game_id})
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from None
    player = store.get(GAME_PLAYERS, record.player_id)
    if player is None or player.get("game_id") != game_id:
        raise RecordNotFound(f"No player {record.player_id!r} in this game", parameter="player_id")
    record.innings_pitched = normalize_innings(record.innings_pitched)
    _check_record(record)

    row = record.model_dump(mode="json", exclude={"id", "seq"})
    existing = store.find(GAME_PITCHING_RECORDS, game_id=game_id, player_id=record.player_id)
    try:
        if existing:
            stored = store.update(GAME_PITCHING_RECORDS, existing[0]["id"], row)
        else:
            stored = store.create(GAME_PITCHING_RECORDS, row)
    except PersistenceError as exc:
        logger.error("Failed to save pitching for %s: %s", record.player_id, exc.message)
        raise
    logger.info(
        "Pitching for %s in game %s: %s IP, %d ER",
        player.get("player_name") or record.player_id, game_id,
        record.innings_pitched, record.earned_runs,
    )
    return PitchingRecord.model_validate(stored)


def delete_pitching_record(store: RecordStore, game_id: str, record_id: str) -> None:
    row = store.get(GAME_PITCHING_RECORDS, record_id)
    if row is None or row.get("game_id") != game_id:
        raise RecordNotFound(f"No pitching record {record_id!r} in this game", parameter="record_id")
    store.delete(GAME_PITCHING_RECORDS, record_id)


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------

@dataclass
class PitchingLine:
    player_id: str = ""
    name: str = ""
    outs: int = 0
    hits: int = 0
    runs: int = 0
    earned_runs: int = 0
    strikeouts: int = 0
    walks: int = 0
    home_runs: int = 0
    win: bool = False
    loss: bool = False
    save: bool = False

    @property
    def innings_pitched(self) -> float:
        return outs_to_innings(self.outs)

    @property
    def era(self) -> float:
        return _rate(self.earned_runs, self.outs)

    @property
    def whip(self) -> float:
        return _rate(self.walks + self.hits, self.outs, per=1)

    @property
    def k_per_nine(self) -> float:
        return _rate(self.strikeouts, self.outs)

    @property
    def bb_per_nine(self) -> float:
        return _rate(self.walks, self.outs)

    def add(self, record: PitchingRecord) -> None:
        self.outs += innings_to_outs(record.innings_pitched)
        self.hits += record.hits_allowed
        self.runs += record.runs_allowed
        self.earned_runs += record.earned_runs
        self.strikeouts += record.strikeouts
        self.walks += record.walks
        self.home_runs += record.home_runs_allowed
        self.win = self.win or record.win
        self.loss = self.loss or record.loss
        self.save = self.save or record.save

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id, "name": self.name,
            "IP": self.innings_pitched, "H": self.hits, "R": self.runs,
            "ER": self.earned_runs, "K": self.strikeouts, "BB": self.walks,
            "HR": self.home_runs, "W": self.win, "L": self.loss, "SV": self.save,
            "ERA": self.era, "WHIP": self.whip,
            "K/9": self.k_per_nine, "BB/9": self.bb_per_nine,
        }


def pitching_lines(
    records: Iterable[PitchingRecord],
    names: Optional[Mapping[str, str]] = None,
) -> list[PitchingLine]:
    names = names or {}
    lines: dict[str, PitchingLine] = {}
    for record in records:
        line = lines.setdefault(
            record.player_id,
            PitchingLine(player_id=record.player_id, name=names.get(record.player_id) or record.player_id),
        )
        line.add(record)
    return list(lines.values())


def pitching_totals(records: Iterable[PitchingRecord]) -> PitchingLine:
    total = PitchingLine(name="Team")
    for record in records:
        total.add(record)
    return total
