# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Lineup assignment engine.

Builds the starting lineup (9 slots, or 10 with a designated hitter) and the
substitutes for one game, edits it, and saves it.  Saving writes the game's
player rows first and then replaces the team's default lineup template; a
template failure is logged and reported but never undoes the game rows.
Players already saved for the game keep their ids across saves.

Slot resolution, per batting order:

    active game player  ->  default template starter  ->  empty slot

An empty slot 10 is pre-set to the DH position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from data.store import DEFAULT_LINEUPS, GAME_PLAYERS, RecordStore
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

logger = logging.getLogger(__name__)

STANDARD_SLOTS = 9
DH_SLOT = 10


def _slot_count(use_dh: bool) -> int:
    return DH_SLOT if use_dh else STANDARD_SLOTS


def _empty_slot(order: int) -> LineupSlot:
    return LineupSlot(
        batting_order=order,
        position=FieldingPosition.DH if order == DH_SLOT else None,
    )


def _uses_dh(slots: Iterable) -> bool:
    return any(
        s.batting_order == DH_SLOT or s.position == FieldingPosition.DH for s in slots
    )


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_lineup(
    existing_game_players: Sequence[GamePlayer],
    default_template: Optional[DefaultLineupTemplate],
    use_dh: Optional[bool] = None,
) -> Lineup:
    """Resolve the editable lineup for a game.

    Args:
        existing_game_players: rows already saved for this game.
        default_template: the team's template, if any.
        use_dh: force DH on or off; ``None`` infers it from whichever source
            supplies the lineup (a slot 10 or a DH position).
    """
    starters = [p for p in existing_game_players if p.is_active and p.batting_order]
    template_starters = list(default_template.starters) if default_template else []

    if use_dh is None:
        use_dh = _uses_dh(starters) if starters else _uses_dh(template_starters)

    by_order = {p.batting_order: p for p in starters}
    template_by_order = {s.batting_order: s for s in template_starters}

    slots: list[LineupSlot] = []
    for order in range(1, _slot_count(use_dh) + 1):
        if order in by_order:
            p = by_order[order]
            slots.append(LineupSlot(
                batting_order=order,
                member_id=p.member_id,
                player_name=p.player_name,
                position=p.position,
            ))
        elif order in template_by_order:
            slots.append(template_by_order[order].model_copy(deep=True))
        else:
            slots.append(_empty_slot(order))

    if existing_game_players:
        substitutes = [
            Substitute(player_name=p.player_name, member_id=p.member_id)
            for p in existing_game_players
            if not p.batting_order
        ]
    elif default_template:
        substitutes = [s.model_copy(deep=True) for s in default_template.substitutes]
    else:
        substitutes = []

    return Lineup(starters=slots, substitutes=substitutes, use_dh=use_dh)


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

class LineupEditor:
    """Edit operations on a lineup, enforcing member and position uniqueness.

    A member may appear once across all slots and substitutes.  A fielding
    position may be held by one starter; DH is only ever on slot 10.
    """

    def __init__(self, lineup: Lineup, members: Sequence[TeamMember] = ()) -> None:
        self.lineup = lineup.model_copy(deep=True)
        self.members = {m.member_id: m for m in members}

    def _slot(self, order: int) -> LineupSlot:
        for slot in self.lineup.starters:
            if slot.batting_order == order:
                return slot
        raise ValidationError(f"No batting order {order} in this lineup", parameter="batting_order")

    def _members_in_use(self, except_order: Optional[int] = None) -> set[str]:
        used = {
            s.member_id for s in self.lineup.starters
            if s.member_id and s.batting_order != except_order
        }
        used.update(s.member_id for s in self.lineup.substitutes if s.member_id)
        return used

    def _positions_in_use(self, except_order: Optional[int] = None) -> set[FieldingPosition]:
        return {
            s.position for s in self.lineup.starters
            if s.position is not None
            and s.position != FieldingPosition.DH
            and s.batting_order != except_order
        }

    # -- slots -------------------------------------------------------------

    def assign_member(self, order: int, member_id: Optional[str]) -> LineupSlot:
        slot = self._slot(order)
        if member_id is None:
            slot.member_id = None
            slot.player_name = ""
            return slot
        member = self.members.get(member_id)
        if member is None:
            raise ValidationError(f"Unknown team member {member_id!r}", parameter="member_id")
        if member_id in self._members_in_use(except_order=order):
            raise ValidationError(
                f"{member.name} is already in the lineup", parameter="member_id",
            )
        slot.member_id = member_id
        slot.player_name = member.name
        return slot

    def set_player_name(self, order: int, name: str) -> LineupSlot:
        """Free-text player (not a team member)."""
        slot = self._slot(order)
        slot.player_name = name.strip()
        slot.member_id = None
        return slot

    def set_position(self, order: int, position: Optional[str | FieldingPosition]) -> LineupSlot:
        slot = self._slot(order)
        if position is None or position == "":
            slot.position = None
            return slot
        try:
            pos = FieldingPosition(position)
        except ValueError:
            raise ValidationError(f"Unknown position {position!r}", parameter="position") from None
        if pos == FieldingPosition.DH:
            if order != DH_SLOT:
                raise ValidationError("DH can only bat tenth", parameter="position")
        elif pos in self._positions_in_use(except_order=order):
            raise ValidationError(f"Position {pos.value} is already taken", parameter="position")
        slot.position = pos
        return slot

    def member_options(self, order: int) -> list[TeamMember]:
        """Members selectable for *order*: unused ones plus the slot's own."""
        self._slot(order)
        used = self._members_in_use(except_order=order)
        return [m for m in self.members.values() if m.member_id not in used]

    def position_options(self, order: int) -> list[FieldingPosition]:
        self._slot(order)
        used = self._positions_in_use(except_order=order)
        options = [
            p for p in FieldingPosition
            if p != FieldingPosition.DH and p not in used
        ]
        if order == DH_SLOT:
            options.append(FieldingPosition.DH)
        return options

    def toggle_dh(self) -> bool:
        """Switch the designated hitter on or off; returns the new setting."""
        if self.lineup.use_dh:
            self.lineup.starters = [s for s in self.lineup.starters if s.batting_order != DH_SLOT]
            self.lineup.use_dh = False
        else:
            self.lineup.starters.append(_empty_slot(DH_SLOT))
            self.lineup.use_dh = True
        return self.lineup.use_dh

    def swap_slots(self, a: int, b: int) -> None:
        """Swap two batters.  Fielding positions travel with the batter,
        except that DH stays on slot 10."""
        first, second = self._slot(a), self._slot(b)
        first.member_id, second.member_id = second.member_id, first.member_id
        first.player_name, second.player_name = second.player_name, first.player_name
        if FieldingPosition.DH not in (first.position, second.position):
            first.position, second.position = second.position, first.position

    def clear_slot(self, order: int) -> LineupSlot:
        slot = self._slot(order)
        empty = _empty_slot(order)
        slot.member_id = empty.member_id
        slot.player_name = empty.player_name
        slot.position = empty.position
        return slot

    def fill_from_members(self, member_ids: Iterable[str]) -> int:
        """Pre-fill empty slots, in batting order, from an attendance list.

        Members already in the lineup or unknown are skipped.  Returns the
        number of slots filled.
        """
        empty = [s for s in sorted(self.lineup.starters, key=lambda s: s.batting_order) if s.is_empty]
        filled = 0
        for member_id in member_ids:
            if not empty:
                break
            if member_id not in self.members or member_id in self._members_in_use():
                continue
            self.assign_member(empty.pop(0).batting_order, member_id)
            filled += 1
        return filled

    # -- substitutes -------------------------------------------------------

    def add_substitute(self, player_name: str = "", member_id: Optional[str] = None) -> Substitute:
        if member_id is not None:
            member = self.members.get(member_id)
            if member is None:
                raise ValidationError(f"Unknown team member {member_id!r}", parameter="member_id")
            if member_id in self._members_in_use():
                raise ValidationError(f"{member.name} is already in the lineup", parameter="member_id")
            player_name = player_name or member.name
        if not player_name.strip():
            raise ValidationError("A substitute needs a name", parameter="player_name")
        sub = Substitute(player_name=player_name.strip(), member_id=member_id)
        self.lineup.substitutes.append(sub)
        return sub

    def remove_substitute(self, index: int) -> Substitute:
        if not 0 <= index < len(self.lineup.substitutes):
            raise ValidationError(f"No substitute at index {index}", parameter="index")
        return self.lineup.substitutes.pop(index)

    # -- validation --------------------------------------------------------

    def validate(self) -> Lineup:
        validate_lineup(self.lineup)
        return self.lineup


def validate_lineup(lineup: Lineup) -> None:
    """Check batting orders, member uniqueness and position uniqueness.

    Raises:
        ValidationError: naming the first problem found.
    """
    orders = [s.batting_order for s in lineup.starters]
    expected = list(range(1, _slot_count(lineup.use_dh) + 1))
    if sorted(orders) != expected:
        raise ValidationError(
            f"Batting orders must be exactly {expected[0]}-{expected[-1]}, got {sorted(orders)}",
            parameter="batting_order",
        )

    seen: set[str] = set()
    for member_id in [s.member_id for s in lineup.starters] + [s.member_id for s in lineup.substitutes]:
        if not member_id:
            continue
        if member_id in seen:
            raise ValidationError(f"Member {member_id!r} appears more than once", parameter="member_id")
        seen.add(member_id)

    positions: set[FieldingPosition] = set()
    for slot in lineup.starters:
        if slot.position is None:
            continue
        if slot.position == FieldingPosition.DH:
            if slot.batting_order != DH_SLOT:
                raise ValidationError("DH can only bat tenth", parameter="position")
            continue
        if slot.position in positions:
            raise ValidationError(f"Position {slot.position.value} is assigned twice", parameter="position")
        positions.add(slot.position)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@dataclass
class LineupSaveResult:
    game_players: list[GamePlayer]
    template_saved: bool
    template_version: Optional[int] = None
    template_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "game_players": [p.model_dump(mode="json") for p in self.game_players],
            "template_saved": self.template_saved,
            "template_version": self.template_version,
            "template_error": self.template_error,
        }


def load_template(store: RecordStore, team_id: str) -> Optional[DefaultLineupTemplate]:
    rows = store.find(DEFAULT_LINEUPS, team_id=team_id)
    if not rows:
        return None
    return DefaultLineupTemplate.model_validate(rows[-1])


def load_lineup(store: RecordStore, game_id: str, team_id: str) -> Lineup:
    players = [
        GamePlayer.model_validate(r)
        for r in store.find(GAME_PLAYERS, game_id=game_id)
    ]
    return build_lineup(players, load_template(store, team_id))


def _player_key(player: GamePlayer) -> tuple:
    if player.member_id:
        return ("member", player.member_id)
    return ("name", player.player_name)


def _reconcile_players(
    store: RecordStore, game_id: str, rows: Sequence[GamePlayer],
) -> list[GamePlayer]:
    """Write *rows* as the game's players, keeping the ids of players who
    were already saved.

    Batting events and substitutions refer to game players by id, so a
    player matched by member id (or by name when not a member) is updated
    in place.  A player who left the game by substitution stays inactive
    unless put back into the batting order.
    """
    existing: dict[tuple, list[GamePlayer]] = {}
    for row in store.find(GAME_PLAYERS, game_id=game_id):
        player = GamePlayer.model_validate(row)
        existing.setdefault(_player_key(player), []).append(player)

    saved: list[GamePlayer] = []
    for player in rows:
        matches = existing.get(_player_key(player))
        if not matches:
            saved.append(GamePlayer.model_validate(
                store.create(GAME_PLAYERS, player.model_dump(mode="json", exclude={"id"}))
            ))
            continue
        current = matches.pop(0)
        changes = player.model_dump(mode="json", exclude={"id", "is_active"})
        changes["is_active"] = current.is_active or player.batting_order is not None
        saved.append(GamePlayer.model_validate(store.update(GAME_PLAYERS, current.id, changes)))

    for leftovers in existing.values():
        for player in leftovers:
            store.delete(GAME_PLAYERS, player.id)
    return saved


def save_lineup(
    store: RecordStore,
    game_id: str,
    team_id: str,
    lineup: Lineup,
    expected_template_version: Optional[int] = None,
) -> LineupSaveResult:
    """Write the game's player rows, then replace the team's default template.

    Empty starter slots are not saved.  A failure writing the game rows
    raises :class:`PersistenceError`; a failure (or version conflict) on the
    template is only reported in the result and leaves the previous
    template in place.
    """
    validate_lineup(lineup)

    rows: list[GamePlayer] = []
    for slot in sorted(lineup.starters, key=lambda s: s.batting_order):
        if not slot.player_name:
            continue
        rows.append(GamePlayer(
            game_id=game_id,
            player_name=slot.player_name,
            member_id=slot.member_id,
            is_starter=True,
            batting_order=slot.batting_order,
            position=slot.position,
        ))
    for sub in lineup.substitutes:
        rows.append(GamePlayer(
            game_id=game_id, player_name=sub.player_name, member_id=sub.member_id,
        ))

    try:
        saved = _reconcile_players(store, game_id, rows)
    except PersistenceError as exc:
        logger.error("Failed to save lineup for game %s: %s", game_id, exc.message)
        raise
    logger.info("Saved %d player(s) for game %s", len(saved), game_id)

    result = LineupSaveResult(game_players=saved, template_saved=False)
    try:
        current = load_template(store, team_id)
        current_version = current.version if current else 0
        if expected_template_version is not None and expected_template_version != current_version:
            result.template_version = current_version
            result.template_error = (
                f"Template changed (version {current_version}, expected "
                f"{expected_template_version}); not overwritten"
            )
            logger.warning("Default lineup for team %s: %s", team_id, result.template_error)
            return result

        template = DefaultLineupTemplate(
            team_id=team_id,
            starters=[s for s in lineup.starters if s.player_name],
            substitutes=list(lineup.substitutes),
            version=current_version + 1,
        )
        old = store.find(DEFAULT_LINEUPS, team_id=team_id)
        store.create(DEFAULT_LINEUPS, template.model_dump(mode="json", exclude={"id"}))
        for row in old:
            store.delete(DEFAULT_LINEUPS, row["id"])
    except PersistenceError as exc:
        result.template_error = exc.message
        logger.warning("Default lineup for team %s not saved: %s", team_id, exc.message)
        return result

    result.template_saved = True
    result.template_version = template.version
    return result
