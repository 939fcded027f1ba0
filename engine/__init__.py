# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Live scoring engine -- classifier, runner advancement, half-inning state,
batting event processor, lineup assignment, substitutions, batting lines
and pitching lines."""

from engine.classifier import Classification, classify, parse_result
from engine.advancement import AdvanceResult, RunnerUpdate, advance
from engine.half_inning import HalfInning, next_half_inning
from engine.processor import PlateAppearanceResult, ScoringEngine
from engine.lineup import (
    LineupEditor,
    LineupSaveResult,
    build_lineup,
    load_lineup,
    save_lineup,
    validate_lineup,
)
from engine.stats import BattingLine, batting_lines, team_totals
from engine.substitution import change_position, substitute_player, substitution_history
from engine.pitching import (
    PitchingLine,
    pitching_lines,
    pitching_records,
    pitching_totals,
    save_pitching_record,
)

__all__ = [
    "AdvanceResult",
    "BattingLine",
    "Classification",
    "HalfInning",
    "LineupEditor",
    "LineupSaveResult",
    "PitchingLine",
    "PlateAppearanceResult",
    "RunnerUpdate",
    "ScoringEngine",
    "advance",
    "batting_lines",
    "build_lineup",
    "change_position",
    "classify",
    "load_lineup",
    "next_half_inning",
    "parse_result",
    "pitching_lines",
    "pitching_records",
    "pitching_totals",
    "save_lineup",
    "save_pitching_record",
    "substitute_player",
    "substitution_history",
    "team_totals",
    "validate_lineup",
]
