# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Runner advancement engine.

Given the runners on base before a play and the base the batter reached,
computes where every runner ends up.  Runners are evaluated from third base
backward so a trailing runner never lands on a base that has not yet been
vacated.

Advancement is deliberately conservative:

- batter to first (single, walk, hit-by-pitch, fielder's choice, error):
  only forced runners move, one base each
- batter to second: every runner moves exactly two bases, capped at home
- batter to third or home: every runner scores

The batter is not part of the result; the caller places the batter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from errors import LogicInconsistency

logger = logging.getLogger(__name__)

HOME = 4


class OnBase(Protocol):
    """Anything with a runner id, player id and current base."""
    runner_id: str
    player_id: str
    base: int


@dataclass(frozen=True)
class RunnerUpdate:
    runner_id: str
    player_id: str
    from_base: int
    new_base: int

    @property
    def scored(self) -> bool:
        return self.new_base == HOME

    def to_dict(self) -> dict:
        return {
            "runner_id": self.runner_id,
            "player_id": self.player_id,
            "from_base": self.from_base,
            "new_base": self.new_base,
            "scored": self.scored,
        }


@dataclass
class AdvanceResult:
    runner_updates: list[RunnerUpdate] = field(default_factory=list)

    @property
    def runs(self) -> int:
        return sum(1 for u in self.runner_updates if u.scored)

    @property
    def scorers(self) -> list[str]:
        return [u.player_id for u in self.runner_updates if u.scored]


def _new_base(base: int, batter_base_reached: int, occupied: set[int]) -> int:
    if batter_base_reached == 1:
        if base == 1:
            return 2
        if base == 2 and 1 in occupied:
            return 3
        if base == 3 and 1 in occupied and 2 in occupied:
            return HOME
        return base
    if batter_base_reached == 2:
        return min(base + 2, HOME)
    return HOME


def advance(occupied_runners: Iterable[OnBase], batter_base_reached: int) -> AdvanceResult:
    """Advance runners for a batter reaching *batter_base_reached*.

    Args:
        occupied_runners: runners on bases 1-3 before the play.
        batter_base_reached: 0-4; 0 moves nobody.

    Returns:
        An :class:`AdvanceResult` listing only the runners that moved.

    Raises:
        LogicInconsistency: if two runners share a base.
    """
    runners = sorted(occupied_runners, key=lambda r: r.base, reverse=True)
    bases = [r.base for r in runners]
    if len(bases) != len(set(bases)):
        raise LogicInconsistency(
            f"More than one runner on a base: {sorted(bases)}", bases=sorted(bases),
        )

    result = AdvanceResult()
    if batter_base_reached <= 0:
        if runners:
            logger.warning("advance() called for a batter who did not reach base; no runner moves")
        return result

    occupied = set(bases)
    for runner in runners:
        new_base = _new_base(runner.base, batter_base_reached, occupied)
        if new_base != runner.base:
            result.runner_updates.append(
                RunnerUpdate(
                    runner_id=runner.runner_id,
                    player_id=runner.player_id,
                    from_base=runner.base,
                    new_base=new_base,
                )
            )
    return result
