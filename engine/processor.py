# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Batting event processor.

Turns one plate appearance into consistent stored game state:

  1. validate and classify the result
  2. put out the runners selected on a ground-ball double/triple play
  3. persist the batting event (status ``pending``, with a snapshot of the
     runners on base before the play)
  4. advance runners and place the batter, flagging runs on the scorers'
     own batting events
  5. recompute the inning's runs from the stored events and upsert the
     line-score row
  6. recompute outs from the stored events; at three outs clear the bases
     and finalize; mark the event ``complete``

Aggregates are never incremented: runs and outs are recounted from the full
event set, and runner writes are absolute, so re-running steps 4-6 for a
``pending`` event (:meth:`ScoringEngine.resume`) is safe.

Validation failures raise before anything is written.  A store failure at
step 3 or later raises :class:`PersistenceError`; from step 4 on it carries
the event id and the completed steps because the event row is already
committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import config
from data.store import (
    BATTING_EVENTS,
    GAMES,
    GAME_PLAYERS,
    GAME_SUBSTITUTIONS,
    HALF_INNING_SCORES,
    RUNNERS,
    Between,
    RecordStore,
)
from engine.advancement import HOME, RunnerUpdate, advance
from engine.classifier import GROUND_BALL_OUTS, Classification, classify, parse_result
from engine.half_inning import HalfInning, next_half_inning
from errors import LogicInconsistency, PersistenceError, RecordNotFound, ValidationError
from models import (
    Annotation,
    BaseOccupant,
    BattingEvent,
    BattingResult,
    GamePlayer,
    HalfInningScore,
    PlateAppearance,
    ProcessingStatus,
    Runner,
)

logger = logging.getLogger(__name__)

MAX_OUT_RUNNERS = 2


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class PlateAppearanceResult:
    event: BattingEvent
    classification: Classification
    runner_updates: list[RunnerUpdate] = field(default_factory=list)
    runs_on_play: int = 0
    inning_runs: int = 0
    outs: int = 0
    finalized: bool = False
    batting_complete: bool = False
    correction: bool = False
    anomalies: list[LogicInconsistency] = field(default_factory=list)
    next_batter: Optional[GamePlayer] = None

    def to_dict(self) -> dict:
        return {
            "event": self.event.model_dump(mode="json"),
            "annotation": self.event.annotation.display(),
            "base_reached": self.classification.base_reached,
            "is_out": self.classification.is_out,
            "runner_updates": [u.to_dict() for u in self.runner_updates],
            "runs_on_play": self.runs_on_play,
            "inning_runs": self.inning_runs,
            "outs": self.outs,
            "finalized": self.finalized,
            "batting_complete": self.batting_complete,
            "correction": self.correction,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "next_batter": self.next_batter.model_dump(mode="json") if self.next_batter else None,
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ScoringEngine:
    """Live scoring for our team's half-innings of one game.

    Args:
        store: the record store holding all game rows.
        game_id: the game being scored.
        batting_first: whether our team bats in the top half.  Read from
            the ``games`` table when omitted, defaulting to ``True``.
        max_innings: scheduled innings; defaults to configuration.
    """

    def __init__(
        self,
        store: RecordStore,
        game_id: str,
        batting_first: Optional[bool] = None,
        max_innings: Optional[int] = None,
    ) -> None:
        self.store = store
        self.game_id = game_id
        if batting_first is None:
            game = store.get(GAMES, game_id) or {}
            batting_first = bool(game.get("batting_first", True))
        self.batting_first = batting_first
        self.max_innings = max_innings or config.get_max_innings()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def _events(self, inning: Optional[int] = None) -> list[BattingEvent]:
        filters = {"game_id": self.game_id}
        if inning is not None:
            filters["inning"] = inning
        return [BattingEvent.model_validate(r) for r in self.store.find(BATTING_EVENTS, **filters)]

    def game_events(self) -> list[BattingEvent]:
        return self._events()

    def _get_event(self, event_id: str) -> Optional[BattingEvent]:
        row = self.store.get(BATTING_EVENTS, event_id)
        if row is None:
            return None
        event = BattingEvent.model_validate(row)
        if event.game_id != self.game_id:
            raise ValidationError(
                f"Event {event_id!r} belongs to another game", parameter="event_id",
            )
        return event

    def _require_event(self, event_id: str) -> BattingEvent:
        event = self._get_event(event_id)
        if event is None:
            raise RecordNotFound(f"No batting event {event_id!r}", parameter="event_id")
        return event

    def _require_runner(self, runner_id: str) -> Runner:
        row = self.store.get(RUNNERS, runner_id)
        if row is None or row.get("game_id") != self.game_id:
            raise RecordNotFound(f"No runner {runner_id!r} in this game", parameter="runner_id")
        runner = Runner.model_validate(row)
        if not runner.is_active:
            raise ValidationError(f"Runner {runner_id!r} is no longer on base", parameter="runner_id")
        return runner

    def _occupancy(self, inning: int, anomalies: list[LogicInconsistency]) -> list[Runner]:
        """Active runners on bases 1-3, one per base.

        When stale rows put two runners on one base (or one player on two
        bases), the most recently written row wins and the clash is reported.
        """
        rows = self.store.find(
            RUNNERS,
            game_id=self.game_id,
            inning=inning,
            is_active=True,
            current_base=Between(1, 3),
        )
        by_player: dict[str, Runner] = {}
        for row in rows:
            runner = Runner.model_validate(row)
            by_player[runner.player_id] = runner
        by_base: dict[int, Runner] = {}
        for runner in sorted(by_player.values(), key=lambda r: r.seq):
            if runner.current_base in by_base:
                anomaly = LogicInconsistency(
                    f"Two active runners on base {runner.current_base}; keeping the latest",
                    base=runner.current_base,
                )
                anomalies.append(anomaly)
                logger.warning("Inning %d: %s", inning, anomaly.message)
            by_base[runner.current_base] = runner
        if len(rows) != len(by_player):
            anomalies.append(LogicInconsistency(
                "Duplicate active runner rows for one player; keeping the latest",
            ))
        return [by_base[b] for b in sorted(by_base)]

    def inning_state(self, inning: int) -> dict:
        """Outs, runners and runs for one of our half-innings."""
        events = self._events(inning)
        half = HalfInning.from_events(events)
        runners = self._occupancy(inning, [])
        return {
            "inning": inning,
            "outs": half.outs,
            "state": half.state,
            "finalized": half.finalized,
            "runs": sum(1 for e in events if e.run_scored),
            "runners": [r.model_dump(mode="json") for r in runners],
            "events": [e.model_dump(mode="json") for e in events],
        }

    def pending_events(self) -> list[BattingEvent]:
        """Events whose processing stopped before step 6."""
        return [
            BattingEvent.model_validate(r)
            for r in self.store.find(
                BATTING_EVENTS, game_id=self.game_id, status=ProcessingStatus.PENDING.value,
            )
        ]

    # -------------------------------------------------------------------
    # Record a plate appearance
    # -------------------------------------------------------------------

    def _validate_out_runners(
        self,
        result: BattingResult,
        error: bool,
        occupancy: Sequence[Runner],
        out_runner_ids: Iterable[str],
    ) -> list[Runner]:
        ids = list(dict.fromkeys(out_runner_ids))
        if not ids:
            return []
        if len(ids) > MAX_OUT_RUNNERS:
            raise ValidationError(
                f"At most {MAX_OUT_RUNNERS} runners can be put out with the batter",
                parameter="out_runner_ids",
            )
        if error:
            raise ValidationError(
                "Runners cannot be put out on a play charged as an error",
                parameter="out_runner_ids",
            )
        if result not in GROUND_BALL_OUTS:
            raise ValidationError(
                f"Runners can only be put out on a ground ball, not {result.value!r}",
                parameter="out_runner_ids",
            )
        on_base = {r.id: r for r in occupancy}
        missing = [rid for rid in ids if rid not in on_base]
        if missing:
            raise ValidationError(
                f"Not an active runner this half-inning: {', '.join(missing)}",
                parameter="out_runner_ids",
            )
        return [on_base[rid] for rid in ids]

    def record(
        self,
        plate_appearance: PlateAppearance,
        out_runner_ids: Iterable[str] = (),
    ) -> PlateAppearanceResult:
        """Record (or correct) one plate appearance.

        Args:
            plate_appearance: scorer input.  An ``event_id`` of an existing
                event makes this a correction: the row is rewritten but other
                runners are not advanced a second time.  The batter's runner
                entry is only rebuilt when the base reached or the out
                changes, and that is refused once later plays of the inning
                are recorded.
            out_runner_ids: runners put out along with the batter on a
                groundout (one = double play, two = triple play).

        Raises:
            ValidationError: bad input; nothing was written.
            PersistenceError: a store operation failed.
        """
        pa = plate_appearance
        result = parse_result(pa.result)
        classification = classify(result, pa.error)
        inning = pa.inning

        existing = self._get_event(pa.event_id) if pa.event_id else None
        correction = existing is not None
        if correction and existing.inning != inning:
            raise ValidationError(
                "A correction cannot move an event to another inning", parameter="inning",
            )

        prior = [e for e in self._events(inning) if e.id != pa.event_id]
        if not correction and HalfInning.from_events(prior).finalized:
            raise ValidationError(
                f"Inning {inning} already has three outs", parameter="inning",
            )

        # a pending event never got past step 3, so it is applied in full
        advance_runners = place_batter = not correction or existing.status == ProcessingStatus.PENDING
        if correction:
            before = classify(existing.result, existing.error)
            changed = (before.base_reached, before.is_out) != (
                classification.base_reached, classification.is_out,
            )
            later = [e for e in prior if e.seq > existing.seq]
            if changed and later:
                raise ValidationError(
                    f"Cannot change where {existing.player_name or existing.player_id} ended up: "
                    f"{len(later)} later plate appearance(s) in inning {inning} depend on it; "
                    "delete them first",
                    parameter="result",
                )
            place_batter = place_batter or changed

        anomalies: list[LogicInconsistency] = []
        occupancy = self._occupancy(inning, anomalies)
        selected = self._validate_out_runners(result, pa.error, occupancy, out_runner_ids)

        if correction and not selected:
            out_runner_count = existing.annotation.out_runner_count
        else:
            out_runner_count = len(selected)
        annotation = Annotation(
            position=pa.position, has_error=pa.error, out_runner_count=out_runner_count,
        )

        if correction:
            snapshot = existing.occupancy_snapshot
            run_scored = existing.run_scored if pa.run_scored is None else pa.run_scored
            if pa.run_scored is None and existing.base_reached == HOME:
                # the stored run came from the old home run, not from a later play
                run_scored = False
            stolen_base = existing.stolen_base if pa.stolen_base is None else pa.stolen_base
            stolen_detail = existing.stolen_bases_detail
        else:
            selected_ids = {r.id for r in selected}
            snapshot = [
                BaseOccupant(runner_id=r.id, player_id=r.player_id, base=r.current_base)
                for r in occupancy
                if r.id not in selected_ids
            ]
            run_scored = bool(pa.run_scored)
            stolen_base = bool(pa.stolen_base)
            stolen_detail = []

        event = BattingEvent(
            id=pa.event_id,
            game_id=self.game_id,
            inning=inning,
            player_id=pa.player_id,
            player_name=pa.player_name or (existing.player_name if existing else ""),
            batting_order=pa.batting_order or (existing.batting_order if existing else 0),
            result=result,
            error=pa.error,
            rbi=pa.rbi,
            run_scored=run_scored or classification.base_reached == HOME,
            stolen_base=stolen_base,
            stolen_bases_detail=stolen_detail,
            base_reached=classification.base_reached,
            annotation=annotation,
            status=ProcessingStatus.PENDING,
            occupancy_snapshot=snapshot,
            seq=existing.seq if existing else 0,
        )

        # Steps 2-3: runners out on the play, then the event row.
        try:
            for runner in selected:
                self.store.update(RUNNERS, runner.id, {"is_active": False})
            if selected:
                logger.info(
                    "Inning %d: %s, runners out: %s",
                    inning, annotation.display(), ", ".join(r.player_name or r.player_id for r in selected),
                )
            row = event.model_dump(mode="json", exclude={"seq"})
            if correction:
                stored = self.store.update(BATTING_EVENTS, existing.id, row)
            else:
                if row["id"] is None:
                    del row["id"]
                stored = self.store.create(BATTING_EVENTS, row)
        except PersistenceError as exc:
            logger.error("Failed to store plate appearance for %s: %s", pa.player_id, exc.message)
            exc.event_id = exc.event_id or pa.event_id
            raise
        event = BattingEvent.model_validate(stored)

        return self._process(
            event, classification, correction, anomalies,
            completed=[1, 2, 3], advance_runners=advance_runners, place_batter=place_batter,
        )

    def resume(self, event_id: str) -> PlateAppearanceResult:
        """Re-run steps 4-6 for an event from its stored snapshot."""
        event = self._require_event(event_id)
        classification = classify(event.result, event.error)
        if event.status == ProcessingStatus.COMPLETE:
            logger.info("Event %s already complete; recomputing aggregates only", event_id)
            return self._process(
                event, classification, True, [], completed=[1, 2, 3],
                advance_runners=False, place_batter=False,
            )
        logger.info("Resuming pending event %s (inning %d)", event_id, event.inning)
        return self._process(event, classification, False, [], completed=[1, 2, 3])

    def _process(
        self,
        event: BattingEvent,
        classification: Classification,
        correction: bool,
        anomalies: list[LogicInconsistency],
        completed: list[int],
        advance_runners: bool = True,
        place_batter: bool = True,
    ) -> PlateAppearanceResult:
        inning = event.inning
        try:
            updates = self._apply_advancement(
                event, classification, advance_runners, place_batter,
            )
            completed.append(4)
            inning_runs = self._update_score(inning)
            completed.append(5)
            half = self._close_out(inning)
            anomalies.extend(half.anomalies)
            self.store.update(BATTING_EVENTS, event.id, {"status": ProcessingStatus.COMPLETE.value})
            completed.append(6)
        except PersistenceError as exc:
            logger.error(
                "Event %s stored but processing stopped after step %d: %s",
                event.id, completed[-1], exc.message,
            )
            raise PersistenceError(
                f"Plate appearance stored but not fully applied: {exc.message}",
                event_id=event.id,
                completed_steps=tuple(completed),
            ) from exc

        stored = self._get_event(event.id) or event
        return PlateAppearanceResult(
            event=stored,
            classification=classification,
            runner_updates=updates,
            runs_on_play=sum(1 for u in updates if u.scored) + (1 if classification.base_reached == HOME else 0),
            inning_runs=inning_runs,
            outs=half.outs,
            finalized=half.finalized,
            batting_complete=half.finalized and next_half_inning(inning, self.max_innings) is None,
            correction=correction,
            next_batter=self.next_batter(self.game_players()),
            anomalies=anomalies,
        )

    def _apply_advancement(
        self,
        event: BattingEvent,
        classification: Classification,
        advance_runners: bool = True,
        place_batter: bool = True,
    ) -> list[RunnerUpdate]:
        """Step 4: move runners from the snapshot and place the batter.

        With *place_batter* false the batter's runner row is left where
        later plays put it.
        """
        inning = event.inning
        updates: list[RunnerUpdate] = []

        if not classification.is_out and advance_runners:
            advanced = advance(event.occupancy_snapshot, classification.base_reached)
            for update in advanced.runner_updates:
                if update.scored:
                    self.store.update(RUNNERS, update.runner_id, {"current_base": HOME, "is_active": False})
                    self._flag_run_scored(update.player_id, inning, before_seq=event.seq)
                else:
                    self.store.update(RUNNERS, update.runner_id, {"current_base": update.new_base})
            updates = advanced.runner_updates

        if not place_batter:
            return updates

        self.store.delete_where(RUNNERS, game_id=self.game_id, event_id=event.id)
        if not classification.is_out and 1 <= classification.base_reached < HOME:
            events = [e for e in self._events(inning) if e.seq <= event.seq]
            if HalfInning.from_events(events).finalized:
                logger.warning(
                    "Inning %d is finalized; %s not placed on base", inning, event.player_id,
                )
            else:
                runner = Runner(
                    game_id=self.game_id,
                    inning=inning,
                    player_id=event.player_id,
                    event_id=event.id,
                    player_name=event.player_name,
                    current_base=classification.base_reached,
                )
                self.store.create(RUNNERS, runner.model_dump(mode="json", exclude={"id", "seq"}))
        return updates

    def _flag_run_scored(self, player_id: str, inning: int, before_seq: Optional[int] = None) -> None:
        """Credit a run to the runner's latest plate appearance of the inning."""
        rows = self.store.find(
            BATTING_EVENTS, game_id=self.game_id, inning=inning, player_id=player_id,
        )
        if before_seq is not None:
            rows = [r for r in rows if r.get("seq", 0) < before_seq]
        if not rows:
            logger.warning("Run by %s in inning %d has no batting event to credit", player_id, inning)
            return
        self.store.update(BATTING_EVENTS, rows[-1]["id"], {"run_scored": True})

    def _update_score(self, inning: int) -> int:
        """Step 5: recount our runs for the inning and upsert the score row."""
        runs = len(self.store.find(
            BATTING_EVENTS, game_id=self.game_id, inning=inning, run_scored=True,
        ))
        side = "top_runs" if self.batting_first else "bottom_runs"
        self._upsert_score(inning, {side: runs})
        return runs

    def _upsert_score(self, inning: int, changes: dict) -> HalfInningScore:
        rows = self.store.find(HALF_INNING_SCORES, game_id=self.game_id, inning=inning)
        if rows:
            changes = {**changes, "batting_first": self.batting_first}
            return HalfInningScore.model_validate(
                self.store.update(HALF_INNING_SCORES, rows[0]["id"], changes)
            )
        score = HalfInningScore(
            game_id=self.game_id, inning=inning, batting_first=self.batting_first, **changes,
        )
        return HalfInningScore.model_validate(
            self.store.create(HALF_INNING_SCORES, score.model_dump(mode="json", exclude={"id"}))
        )

    def _close_out(self, inning: int) -> HalfInning:
        """Step 6: recount outs; at three, clear every runner of the inning."""
        half = HalfInning.from_events(self._events(inning))
        if half.finalized:
            cleared = self.store.update_where(
                RUNNERS, {"is_active": False},
                game_id=self.game_id, inning=inning, is_active=True,
            )
            if cleared:
                logger.info("Inning %d over; %d runner(s) left on base", inning, cleared)
        return half

    # -------------------------------------------------------------------
    # Corrections
    # -------------------------------------------------------------------

    def delete_event(self, event_id: str) -> dict:
        """Remove a plate appearance and the batter's runner entry, then
        recount the inning.  Runners already cleared stay cleared."""
        event = self._require_event(event_id)
        self.store.delete(BATTING_EVENTS, event_id)
        self.store.delete_where(RUNNERS, game_id=self.game_id, event_id=event_id)
        self._update_score(event.inning)
        self._close_out(event.inning)
        logger.info("Deleted event %s (inning %d)", event_id, event.inning)
        return self.inning_state(event.inning)

    # -------------------------------------------------------------------
    # Manual runner moves
    # -------------------------------------------------------------------

    def _check_target(self, runner: Runner, to_base: int) -> None:
        if not 1 <= to_base <= HOME:
            raise ValidationError(f"Base must be 1-4, got {to_base}", parameter="to_base")
        if to_base == runner.current_base:
            raise ValidationError("Runner is already on that base", parameter="to_base")
        if to_base < HOME:
            for other in self._occupancy(runner.inning, []):
                if other.current_base == to_base and other.id != runner.id:
                    raise ValidationError(
                        f"Base {to_base} is already occupied by {other.player_name or other.player_id}",
                        parameter="to_base",
                    )

    def steal_base(self, runner_id: str, to_base: int) -> dict:
        """Runner steals *to_base*; the steal is credited on the runner's
        latest batting event of the inning."""
        runner = self._require_runner(runner_id)
        if to_base <= runner.current_base:
            raise ValidationError("A steal must advance the runner", parameter="to_base")
        self._check_target(runner, to_base)

        rows = self.store.find(
            BATTING_EVENTS, game_id=self.game_id, inning=runner.inning, player_id=runner.player_id,
        )
        if rows:
            latest = rows[-1]
            detail = list(latest.get("stolen_bases_detail") or []) + [to_base]
            self.store.update(BATTING_EVENTS, latest["id"], {
                "stolen_base": True, "stolen_bases_detail": detail,
            })
        if to_base == HOME:
            return self.score_runner(runner_id)
        self.store.update(RUNNERS, runner_id, {"current_base": to_base})
        return self.inning_state(runner.inning)

    def advance_runner(self, runner_id: str, to_base: int) -> dict:
        """Move a runner without crediting a steal (wild pitch, balk, ...)."""
        runner = self._require_runner(runner_id)
        self._check_target(runner, to_base)
        if to_base == HOME:
            return self.score_runner(runner_id)
        self.store.update(RUNNERS, runner_id, {"current_base": to_base})
        return self.inning_state(runner.inning)

    def score_runner(self, runner_id: str) -> dict:
        runner = self._require_runner(runner_id)
        self.store.update(RUNNERS, runner_id, {"current_base": HOME, "is_active": False})
        self._flag_run_scored(runner.player_id, runner.inning)
        self._update_score(runner.inning)
        return self.inning_state(runner.inning)

    # -------------------------------------------------------------------
    # Line score
    # -------------------------------------------------------------------

    def record_opponent_runs(self, inning: int, runs: int) -> HalfInningScore:
        """Scorer-entered runs for the opponent's half of *inning*."""
        if inning < 1:
            raise ValidationError("Inning must be 1 or greater", parameter="inning")
        if runs < 0:
            raise ValidationError("Runs cannot be negative", parameter="runs")
        side = "bottom_runs" if self.batting_first else "top_runs"
        return self._upsert_score(inning, {side: runs})

    def scoreboard(self) -> dict:
        rows = [
            HalfInningScore.model_validate(r)
            for r in self.store.find(HALF_INNING_SCORES, order_by="inning", game_id=self.game_id)
        ]
        return {
            "game_id": self.game_id,
            "batting_first": self.batting_first,
            "innings": [
                {"inning": r.inning, "top": r.top_runs, "bottom": r.bottom_runs} for r in rows
            ],
            "us": sum(r.our_runs for r in rows),
            "them": sum(r.their_runs for r in rows),
        }

    # -------------------------------------------------------------------
    # Batting order
    # -------------------------------------------------------------------

    def game_players(self) -> list[GamePlayer]:
        rows = self.store.find(GAME_PLAYERS, order_by="batting_order", game_id=self.game_id)
        return [GamePlayer.model_validate(r) for r in rows]

    def next_batter(self, players: Sequence[GamePlayer]) -> Optional[GamePlayer]:
        """Return who is due up.

        The order cycles after the last recorded batter.  A batter who has
        since been substituted out is placed by the batting order recorded
        with the substitution (or on the event).  Failing both, the position
        is inferred from the number of plate appearances in the latest
        inning.
        """
        lineup = sorted(
            (p for p in players if p.is_active and p.batting_order),
            key=lambda p: p.batting_order,
        )
        if not lineup:
            return None
        events = self._events()
        if not events:
            return lineup[0]
        last = events[-1]
        last_order = self._batting_order_of(last, lineup)
        if last_order:
            for player in lineup:
                if player.batting_order > last_order:
                    return player
            return lineup[0]
        in_inning = sum(1 for e in events if e.inning == last.inning)
        return lineup[in_inning % len(lineup)]

    def _batting_order_of(self, event: BattingEvent, lineup: Sequence[GamePlayer]) -> Optional[int]:
        for player in lineup:
            if player.id == event.player_id:
                return player.batting_order
        swaps = self.store.find(GAME_SUBSTITUTIONS, game_id=self.game_id, out_player_id=event.player_id)
        if swaps and swaps[-1].get("batting_order"):
            return swaps[-1]["batting_order"]
        return event.batting_order or None
