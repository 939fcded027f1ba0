# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Half-inning state machine.

One team's half of one inning moves from ``Active(outs 0-2)`` to
``Finalized(outs = 3)``; finalized is terminal.  State is always rebuilt
from the stored events of the inning (:meth:`HalfInning.from_events`), so
replaying or retrying a write can never double-count an out.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from errors import LogicInconsistency
from engine.classifier import classify
from models import BattingEvent

logger = logging.getLogger(__name__)

OUTS_PER_HALF_INNING = 3


class HalfInning:
    """Outs for one half-inning."""

    def __init__(self, outs: int = 0) -> None:
        if not 0 <= outs <= OUTS_PER_HALF_INNING:
            raise ValueError(f"outs must be 0-{OUTS_PER_HALF_INNING}, got {outs}")
        self.outs = outs
        self.anomalies: list[LogicInconsistency] = []

    @property
    def finalized(self) -> bool:
        return self.outs >= OUTS_PER_HALF_INNING

    @property
    def state(self) -> str:
        return "finalized" if self.finalized else "active"

    def record(self, is_out: bool, runners_out: int = 0) -> Optional[LogicInconsistency]:
        """Add the outs of one plate appearance.

        An update that would push past three outs finalizes at exactly three
        and returns (and keeps) a :class:`LogicInconsistency` describing the
        overflow.  Updates to a finalized half-inning are also reported.
        """
        added = (1 if is_out else 0) + runners_out
        if added == 0:
            return None
        raw = self.outs + added
        anomaly = None
        if self.finalized or raw > OUTS_PER_HALF_INNING:
            anomaly = LogicInconsistency(
                f"Outs would reach {raw}; clamped to {OUTS_PER_HALF_INNING}",
                raw_outs=raw,
            )
            self.anomalies.append(anomaly)
            logger.warning("Half-inning out overflow: %s", anomaly.message)
        self.outs = min(raw, OUTS_PER_HALF_INNING)
        return anomaly

    @classmethod
    def from_events(cls, events: Iterable[BattingEvent]) -> "HalfInning":
        """Recompute the half-inning from its events in recorded order."""
        half = cls()
        for event in sorted(events, key=lambda e: e.seq):
            c = classify(event.result, event.error)
            half.record(c.is_out, event.annotation.out_runner_count)
        return half

    def __repr__(self) -> str:
        return f"HalfInning(outs={self.outs}, {self.state})"


def next_half_inning(inning: int, max_innings: int) -> Optional[int]:
    """Return the next inning our team bats in, or ``None`` once the last
    scheduled inning has been batted."""
    if inning >= max_innings:
        return None
    return inning + 1
