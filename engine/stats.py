# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Batting lines derived from stored batting events.

At-bats exclude walks, hit-by-pitch and sacrifices.  Rate stats use the
usual definitions and are 0.0 when their denominator is zero:

    AVG = H / AB
    OBP = (H + BB + HBP) / (AB + BB + HBP)
    SLG = TB / AB
    OPS = OBP + SLG
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from engine.classifier import HIT_RESULTS
from models import BattingEvent, BattingResult

NON_AT_BATS = frozenset({
    BattingResult.WALK,
    BattingResult.HIT_BY_PITCH,
    BattingResult.SACRIFICE_BUNT,
    BattingResult.SACRIFICE_FLY,
})

TOTAL_BASES = {
    BattingResult.SINGLE: 1,
    BattingResult.DOUBLE: 2,
    BattingResult.TRIPLE: 3,
    BattingResult.HOME_RUN: 4,
}


def _rate(num: int, den: int) -> float:
    return round(num / den, 3) if den else 0.0


@dataclass
class BattingLine:
    player_id: str = ""
    name: str = ""
    batting_order: int = 0
    ab: int = 0
    hits: int = 0
    doubles: int = 0
    triples: int = 0
    hr: int = 0
    runs: int = 0
    rbi: int = 0
    bb: int = 0
    hbp: int = 0
    k: int = 0
    sb: int = 0
    sh: int = 0
    sf: int = 0
    tb: int = 0

    @property
    def pa(self) -> int:
        return self.ab + self.bb + self.hbp + self.sh + self.sf

    @property
    def avg(self) -> float:
        return _rate(self.hits, self.ab)

    @property
    def obp(self) -> float:
        return _rate(self.hits + self.bb + self.hbp, self.ab + self.bb + self.hbp)

    @property
    def slg(self) -> float:
        return _rate(self.tb, self.ab)

    @property
    def ops(self) -> float:
        return round(self.obp + self.slg, 3)

    def add(self, event: BattingEvent) -> None:
        result = event.result
        if result not in NON_AT_BATS:
            self.ab += 1
        if result in HIT_RESULTS:
            self.hits += 1
            self.tb += TOTAL_BASES[result]
        if result == BattingResult.DOUBLE:
            self.doubles += 1
        elif result == BattingResult.TRIPLE:
            self.triples += 1
        elif result == BattingResult.HOME_RUN:
            self.hr += 1
        elif result == BattingResult.WALK:
            self.bb += 1
        elif result == BattingResult.HIT_BY_PITCH:
            self.hbp += 1
        elif result == BattingResult.STRIKEOUT:
            self.k += 1
        elif result == BattingResult.SACRIFICE_BUNT:
            self.sh += 1
        elif result == BattingResult.SACRIFICE_FLY:
            self.sf += 1
        self.rbi += event.rbi
        if event.run_scored:
            self.runs += 1
        if event.stolen_bases_detail:
            self.sb += len(event.stolen_bases_detail)
        elif event.stolen_base:
            self.sb += 1

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id, "name": self.name,
            "batting_order": self.batting_order, "PA": self.pa,
            "AB": self.ab, "H": self.hits, "2B": self.doubles,
            "3B": self.triples, "HR": self.hr, "R": self.runs,
            "RBI": self.rbi, "BB": self.bb, "HBP": self.hbp,
            "K": self.k, "SB": self.sb, "SH": self.sh, "SF": self.sf,
            "AVG": self.avg, "OBP": self.obp, "SLG": self.slg, "OPS": self.ops,
        }


def batting_lines(
    events: Iterable[BattingEvent],
    names: Optional[Mapping[str, str]] = None,
) -> list[BattingLine]:
    """One line per batter, ordered by batting order then first appearance."""
    names = names or {}
    lines: dict[str, BattingLine] = {}
    for event in sorted(events, key=lambda e: e.seq):
        line = lines.get(event.player_id)
        if line is None:
            line = BattingLine(
                player_id=event.player_id,
                name=names.get(event.player_id) or event.player_name or event.player_id,
                batting_order=event.batting_order,
            )
            lines[event.player_id] = line
        line.add(event)
    ordered = list(lines.values())
    ordered.sort(key=lambda line: line.batting_order or 99)
    return ordered


def team_totals(events: Iterable[BattingEvent]) -> BattingLine:
    total = BattingLine(name="Team")
    for event in events:
        total.add(event)
    return total
