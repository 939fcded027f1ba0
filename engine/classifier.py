# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Batting result classifier.

Maps a scorer's result label (plus the error flag) to the base the batter
reached and whether the plate appearance is an out.  Pure and total: every
:class:`BattingResult` has an entry in both tables.
"""

from __future__ import annotations

from dataclasses import dataclass

from errors import ValidationError
from models import BattingResult


BASE_REACHED: dict[BattingResult, int] = {
    BattingResult.SINGLE: 1,
    BattingResult.DOUBLE: 2,
    BattingResult.TRIPLE: 3,
    BattingResult.HOME_RUN: 4,
    BattingResult.WALK: 1,
    BattingResult.HIT_BY_PITCH: 1,
    BattingResult.FIELDERS_CHOICE: 1,
    BattingResult.STRIKEOUT: 0,
    BattingResult.GROUNDOUT: 0,
    BattingResult.FLYOUT: 0,
    BattingResult.LINEOUT: 0,
    BattingResult.SACRIFICE_BUNT: 0,
    BattingResult.SACRIFICE_FLY: 0,
    BattingResult.FIELDERS_CHOICE_OUT: 0,
}

OUT_RESULTS: frozenset[BattingResult] = frozenset({
    BattingResult.STRIKEOUT,
    BattingResult.GROUNDOUT,
    BattingResult.FLYOUT,
    BattingResult.LINEOUT,
    BattingResult.SACRIFICE_BUNT,
    BattingResult.SACRIFICE_FLY,
    BattingResult.FIELDERS_CHOICE_OUT,
})

HIT_RESULTS: frozenset[BattingResult] = frozenset({
    BattingResult.SINGLE,
    BattingResult.DOUBLE,
    BattingResult.TRIPLE,
    BattingResult.HOME_RUN,
})

# Results that may turn into a double or triple play.
GROUND_BALL_OUTS: frozenset[BattingResult] = frozenset({BattingResult.GROUNDOUT})


@dataclass(frozen=True)
class Classification:
    base_reached: int
    is_out: bool


def parse_result(label: str | BattingResult | None) -> BattingResult:
    """Coerce a result label to :class:`BattingResult`.

    Raises:
        ValidationError: if the label is missing or unknown.
    """
    if isinstance(label, BattingResult):
        return label
    if label is None or not str(label).strip():
        raise ValidationError("A batting result is required", parameter="result")
    try:
        return BattingResult(str(label).strip().lower())
    except ValueError:
        valid = ", ".join(r.value for r in BattingResult)
        raise ValidationError(
            f"Unknown batting result {label!r}; expected one of: {valid}",
            parameter="result",
        ) from None


def classify(result: BattingResult, error: bool = False) -> Classification:
    """Return the base reached and out status for a plate appearance.

    An error charged on the play always puts the batter safely on first,
    whatever the nominal result was.
    """
    if error:
        return Classification(base_reached=1, is_out=False)
    return Classification(
        base_reached=BASE_REACHED[result],
        is_out=result in OUT_RESULTS,
    )
