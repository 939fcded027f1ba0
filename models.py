# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the live scoring engine and lineup assignment."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BattingResult(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    HOME_RUN = "home_run"
    WALK = "walk"
    HIT_BY_PITCH = "hit_by_pitch"
    FIELDERS_CHOICE = "fielders_choice"  # batter safe at first
    STRIKEOUT = "strikeout"
    GROUNDOUT = "groundout"
    FLYOUT = "flyout"
    LINEOUT = "lineout"
    SACRIFICE_BUNT = "sacrifice_bunt"
    SACRIFICE_FLY = "sacrifice_fly"
    FIELDERS_CHOICE_OUT = "fielders_choice_out"  # batter retired on the play


class FieldingPosition(str, Enum):
    P = "P"
    C = "C"
    FIRST_BASE = "1B"
    SECOND_BASE = "2B"
    THIRD_BASE = "3B"
    SS = "SS"
    LF = "LF"
    CF = "CF"
    RF = "RF"
    DH = "DH"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


# ---------------------------------------------------------------------------
# Batting events
# ---------------------------------------------------------------------------

class Annotation(BaseModel):
    """Structured play annotation.

    The scorer-facing tag text ("SS, error, double play") is derived from
    these fields by :meth:`display`; nothing parses it back.
    """
    position: Optional[FieldingPosition] = None
    has_error: bool = False
    out_runner_count: int = Field(default=0, ge=0, le=2)

    def display(self) -> str:
        tags: list[str] = []
        if self.position is not None:
            tags.append(self.position.value)
        if self.has_error:
            tags.append("error")
        if self.out_runner_count == 1:
            tags.append("double play")
        elif self.out_runner_count == 2:
            tags.append("triple play")
        return ", ".join(tags)


class BaseOccupant(BaseModel):
    """One runner as it stood before a play."""
    runner_id: str
    player_id: str
    base: int = Field(ge=1, le=3)


class BattingEvent(BaseModel):
    """One plate appearance as stored in the record store."""
    id: Optional[str] = None
    game_id: str
    inning: int = Field(ge=1)
    player_id: str = Field(min_length=1)
    player_name: str = ""
    batting_order: int = Field(default=0, ge=0, le=10)
    result: BattingResult
    error: bool = False
    rbi: int = Field(default=0, ge=0, le=4)
    run_scored: bool = False
    stolen_base: bool = False
    stolen_bases_detail: list[int] = Field(default_factory=list)
    base_reached: int = Field(default=0, ge=0, le=4)
    annotation: Annotation = Field(default_factory=Annotation)
    status: ProcessingStatus = ProcessingStatus.PENDING
    occupancy_snapshot: list[BaseOccupant] = Field(default_factory=list)
    seq: int = 0


class PlateAppearance(BaseModel):
    """Scorer input for one plate appearance.

    ``event_id`` names an already-recorded event to correct.  For a
    correction, ``run_scored`` and ``stolen_base`` left as ``None`` keep the
    stored values.
    """
    event_id: Optional[str] = None
    inning: int = Field(ge=1, description="Inning number (1+).")
    player_id: str = Field(min_length=1, description="Game player id of the batter.")
    player_name: str = ""
    batting_order: int = Field(default=0, ge=0, le=10)
    result: Optional[str] = Field(default=None, description="Result label, e.g. 'single', 'groundout'.")
    error: bool = Field(default=False, description="Batter reached on a fielding error.")
    position: Optional[FieldingPosition] = Field(default=None, description="Fielder who handled the ball.")
    rbi: int = Field(default=0, ge=0, le=4)
    run_scored: Optional[bool] = None
    stolen_base: Optional[bool] = None


class Runner(BaseModel):
    """A batter who reached base; ``event_id`` is the plate appearance that
    put them there."""
    id: Optional[str] = None
    game_id: str
    inning: int = Field(ge=1)
    player_id: str
    event_id: Optional[str] = None
    player_name: str = ""
    current_base: int = Field(ge=1, le=4)
    is_active: bool = True
    seq: int = 0


class HalfInningScore(BaseModel):
    """Per-inning line score row.

    ``batting_first`` is true when our team bats in the top half, so our
    runs land in ``top_runs``; the opponent side is scorer-entered.
    """
    id: Optional[str] = None
    game_id: str
    inning: int = Field(ge=1)
    batting_first: bool = True
    top_runs: int = Field(default=0, ge=0)
    bottom_runs: int = Field(default=0, ge=0)

    @property
    def our_runs(self) -> int:
        return self.top_runs if self.batting_first else self.bottom_runs

    @property
    def their_runs(self) -> int:
        return self.bottom_runs if self.batting_first else self.top_runs


# ---------------------------------------------------------------------------
# Lineups
# ---------------------------------------------------------------------------

class TeamMember(BaseModel):
    member_id: str
    display_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or "Unnamed"


class LineupSlot(BaseModel):
    batting_order: int = Field(ge=1, le=10)
    member_id: Optional[str] = None
    player_name: str = ""
    position: Optional[FieldingPosition] = None

    @property
    def is_empty(self) -> bool:
        return not self.player_name and not self.member_id


class Substitute(BaseModel):
    player_name: str
    member_id: Optional[str] = None


class Lineup(BaseModel):
    starters: list[LineupSlot] = Field(default_factory=list)
    substitutes: list[Substitute] = Field(default_factory=list)
    use_dh: bool = False


class GamePlayer(BaseModel):
    """A game-scoped participant row (starter or substitute)."""
    id: Optional[str] = None
    game_id: str
    player_name: str
    member_id: Optional[str] = None
    is_starter: bool = False
    batting_order: Optional[int] = Field(default=None, ge=1, le=10)
    position: Optional[FieldingPosition] = None
    is_active: bool = True


class DefaultLineupTemplate(BaseModel):
    """Team-scoped copy of the most recently saved lineup."""
    id: Optional[str] = None
    team_id: str
    starters: list[LineupSlot] = Field(default_factory=list)
    substitutes: list[Substitute] = Field(default_factory=list)
    version: int = 0


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------

class SubstitutionType(str, Enum):
    PLAYER_CHANGE = "player_change"
    PINCH_HITTER = "pinch_hitter"
    PINCH_RUNNER = "pinch_runner"
    DEFENSIVE_CHANGE = "defensive_change"


class Substitution(BaseModel):
    """One mid-game swap: the incoming player takes over the outgoing
    player's batting order and, unless changed, their position."""
    id: Optional[str] = None
    game_id: str
    inning: int = Field(ge=1)
    out_player_id: str
    in_player_id: str
    substitution_type: SubstitutionType = SubstitutionType.PLAYER_CHANGE
    batting_order: Optional[int] = Field(default=None, ge=1, le=10)
    new_position: Optional[FieldingPosition] = None
    description: str = ""
    seq: int = 0


# ---------------------------------------------------------------------------
# Pitching
# ---------------------------------------------------------------------------

class PitchingRecord(BaseModel):
    """One pitcher's line for a game.

    ``innings_pitched`` uses scorebook notation: the digit after the point
    counts outs, so 5.2 is five innings and two outs.
    """
    id: Optional[str] = None
    game_id: str
    player_id: str = Field(min_length=1)
    innings_pitched: float = Field(default=0.0, ge=0)
    hits_allowed: int = Field(default=0, ge=0)
    runs_allowed: int = Field(default=0, ge=0)
    earned_runs: int = Field(default=0, ge=0)
    strikeouts: int = Field(default=0, ge=0)
    walks: int = Field(default=0, ge=0)
    home_runs_allowed: int = Field(default=0, ge=0)
    win: bool = False
    loss: bool = False
    save: bool = False
    seq: int = 0
