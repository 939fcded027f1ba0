# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Mid-game player substitutions.

A substitution takes an active player out of the batting order and puts a
bench player in.  The incoming player inherits the batting order and the
fielding position (unless a new one is given); the outgoing player keeps
their row for history but is no longer active and holds no batting order
or position.  A player who has left the game may not come back in.

Each swap is first written to the ``game_substitutions`` history, then the
two game player rows are updated.
"""

from __future__ import annotations

import logging
from typing import Optional

from data.store import GAME_PLAYERS, GAME_SUBSTITUTIONS, RecordStore
from engine.lineup import DH_SLOT
from errors import PersistenceError, RecordNotFound, ValidationError
from models import FieldingPosition, GamePlayer, Substitution, SubstitutionType

logger = logging.getLogger(__name__)


def game_players(store: RecordStore, game_id: str) -> list[GamePlayer]:
    return [
        GamePlayer.model_validate(r)
        for r in store.find(GAME_PLAYERS, order_by="batting_order", game_id=game_id)
    ]


def substitution_history(store: RecordStore, game_id: str) -> list[Substitution]:
    """All substitutions of the game, oldest first."""
    return [Substitution.model_validate(r) for r in store.find(GAME_SUBSTITUTIONS, game_id=game_id)]


def active_players(players: list[GamePlayer]) -> list[GamePlayer]:
    """Players currently in the batting order, by batting order."""
    return sorted(
        (p for p in players if p.is_active and p.batting_order),
        key=lambda p: p.batting_order,
    )


def bench_players(store: RecordStore, game_id: str) -> list[GamePlayer]:
    """Players who can still come into the game."""
    left = {s.out_player_id for s in substitution_history(store, game_id)}
    return [
        p for p in game_players(store, game_id)
        if not p.batting_order and p.id not in left
    ]


def _require_player(store: RecordStore, game_id: str, player_id: str, parameter: str) -> GamePlayer:
    row = store.get(GAME_PLAYERS, player_id)
    if row is None or row.get("game_id") != game_id:
        raise RecordNotFound(f"No player {player_id!r} in this game", parameter=parameter)
    return GamePlayer.model_validate(row)


def _parse_position(position: Optional[str | FieldingPosition]) -> Optional[FieldingPosition]:
    if position is None or position == "":
        return None
    try:
        return FieldingPosition(position)
    except ValueError:
        raise ValidationError(f"Unknown position {position!r}", parameter="new_position") from None


def _check_position(
    store: RecordStore,
    game_id: str,
    position: FieldingPosition,
    batting_order: Optional[int],
    leaving_id: str,
) -> None:
    if position == FieldingPosition.DH:
        if batting_order != DH_SLOT:
            raise ValidationError("DH can only bat tenth", parameter="new_position")
        return
    for other in active_players(game_players(store, game_id)):
        if other.id != leaving_id and other.position == position:
            raise ValidationError(
                f"Position {position.value} is held by {other.player_name}",
                parameter="new_position",
            )


def substitute_player(
    store: RecordStore,
    game_id: str,
    out_player_id: str,
    in_player_id: str,
    inning: int,
    substitution_type: SubstitutionType | str = SubstitutionType.PLAYER_CHANGE,
    new_position: Optional[str | FieldingPosition] = None,
) -> Substitution:
    """Swap *in_player_id* into the batting order in place of *out_player_id*.

    Raises:
        ValidationError: the swap is not allowed; nothing was written.
        RecordNotFound: either player is not part of this game.
        PersistenceError: a store write failed.
    """
    if inning < 1:
        raise ValidationError("Inning must be 1 or greater", parameter="inning")
    try:
        kind = SubstitutionType(substitution_type)
    except ValueError:
        raise ValidationError(
            f"Unknown substitution type {substitution_type!r}", parameter="substitution_type",
        ) from None
    if out_player_id == in_player_id:
        raise ValidationError("A player cannot replace themselves", parameter="in_player_id")

    out_player = _require_player(store, game_id, out_player_id, "out_player_id")
    in_player = _require_player(store, game_id, in_player_id, "in_player_id")
    if not out_player.is_active or not out_player.batting_order:
        raise ValidationError(
            f"{out_player.player_name} is not in the batting order", parameter="out_player_id",
        )
    if in_player.batting_order:
        raise ValidationError(
            f"{in_player.player_name} is already in the batting order", parameter="in_player_id",
        )
    if any(s.out_player_id == in_player_id for s in substitution_history(store, game_id)):
        raise ValidationError(
            f"{in_player.player_name} has already left the game", parameter="in_player_id",
        )

    position = _parse_position(new_position) or out_player.position
    if position is not None:
        _check_position(store, game_id, position, out_player.batting_order, out_player_id)

    record = Substitution(
        game_id=game_id,
        inning=inning,
        out_player_id=out_player_id,
        in_player_id=in_player_id,
        substitution_type=kind,
        batting_order=out_player.batting_order,
        new_position=position,
        description=f"{out_player.player_name} -> {in_player.player_name}",
    )
    try:
        stored = store.create(GAME_SUBSTITUTIONS, record.model_dump(mode="json", exclude={"id", "seq"}))
        store.update(GAME_PLAYERS, out_player_id, {
            "is_active": False, "batting_order": None, "position": None,
        })
        store.update(GAME_PLAYERS, in_player_id, {
            "is_active": True,
            "batting_order": out_player.batting_order,
            "position": position.value if position else None,
        })
    except PersistenceError as exc:
        logger.error("Substitution in game %s failed: %s", game_id, exc.message)
        raise

    logger.info(
        "Inning %d: %s (%s, batting %d)",
        inning, record.description, kind.value, out_player.batting_order,
    )
    return Substitution.model_validate(stored)


def change_position(
    store: RecordStore,
    game_id: str,
    player_id: str,
    position: Optional[str | FieldingPosition],
) -> GamePlayer:
    """Move an active player to another fielding position (no swap)."""
    player = _require_player(store, game_id, player_id, "player_id")
    if not player.is_active or not player.batting_order:
        raise ValidationError(f"{player.player_name} is not in the game", parameter="player_id")
    pos = _parse_position(position)
    if pos is not None:
        _check_position(store, game_id, pos, player.batting_order, player_id)
    row = store.update(GAME_PLAYERS, player_id, {"position": pos.value if pos else None})
    return GamePlayer.model_validate(row)
