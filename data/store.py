# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Record Store collaborator for game scoring data.

The scoring engine keeps no state of its own: batting events, runners,
line-score rows, game players and default lineup templates all live in a
record store addressed by table name and record id.  Queries are limited to
equality filters, inclusive ranges (:class:`Between`) and membership
(:class:`OneOf`).

Two implementations are provided:

    store = MemoryRecordStore()                 # process-local, for tests
    store = JsonRecordStore("/tmp/scorebook")   # one JSON file per table

    row = store.create("runners", {"game_id": "g1", "inning": 1, ...})
    store.find("runners", game_id="g1", inning=1, is_active=True,
               order_by="current_base", descending=True)
    store.update("runners", row["id"], {"current_base": 2})
    store.delete_where("game_players", game_id="g1")

Every record gets an ``id`` (12 hex chars) and a per-table ``seq`` that
increases monotonically with creation order.  Store failures surface as
:class:`errors.PersistenceError`.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from errors import PersistenceError, RecordNotFound

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Table names
# ---------------------------------------------------------------------------

BATTING_EVENTS = "batting_events"
RUNNERS = "runners"
HALF_INNING_SCORES = "half_inning_scores"
GAME_PLAYERS = "game_players"
DEFAULT_LINEUPS = "default_lineups"
GAMES = "games"
GAME_SUBSTITUTIONS = "game_substitutions"
GAME_PITCHING_RECORDS = "game_pitching_records"


# ---------------------------------------------------------------------------
# Filter helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Between:
    """Inclusive range filter: ``lo <= value <= hi``."""
    lo: Any
    hi: Any

    def matches(self, value: Any) -> bool:
        return value is not None and self.lo <= value <= self.hi


@dataclass(frozen=True)
class OneOf:
    """Membership filter."""
    values: tuple

    def __init__(self, values: Iterable[Any]) -> None:
        object.__setattr__(self, "values", tuple(values))

    def matches(self, value: Any) -> bool:
        return value in self.values


def _matches(record: dict, filters: dict[str, Any]) -> bool:
    for field_name, expected in filters.items():
        value = record.get(field_name)
        if isinstance(expected, (Between, OneOf)):
            if not expected.matches(value):
                return False
        elif value != expected:
            return False
    return True


def new_record_id() -> str:
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Store base
# ---------------------------------------------------------------------------

class RecordStore:
    """Table-oriented CRUD store.

    Subclasses provide :meth:`_load` and :meth:`_commit`; everything else
    (filtering, ordering, id/seq assignment) is shared.  Returned records are
    copies, so mutating them never changes stored state.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    # -- subclass hooks ----------------------------------------------------

    def _load(self, table: str) -> dict[str, dict]:
        raise NotImplementedError

    def _commit(self, table: str, rows: dict[str, dict]) -> None:
        raise NotImplementedError

    # -- public API --------------------------------------------------------

    def create(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert *record*, assigning ``id`` (unless given) and ``seq``."""
        with self._lock:
            rows = self._load(table)
            row = copy.deepcopy(record)
            row["id"] = row.get("id") or new_record_id()
            if row["id"] in rows:
                raise PersistenceError(
                    f"Duplicate id {row['id']!r} in table {table!r}", table=table,
                )
            row["seq"] = max((r.get("seq", 0) for r in rows.values()), default=0) + 1
            rows[row["id"]] = row
            self._commit(table, rows)
            return copy.deepcopy(row)

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._load(table).get(record_id)
            return copy.deepcopy(row) if row is not None else None

    def find(
        self,
        table: str,
        order_by: str | None = "seq",
        descending: bool = False,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """Return records matching all *filters*, ordered by *order_by*."""
        with self._lock:
            rows = [r for r in self._load(table).values() if _matches(r, filters)]
        if order_by:
            rows.sort(
                key=lambda r: (r.get(order_by) is None, r.get(order_by), r.get("seq", 0)),
                reverse=descending,
            )
        return copy.deepcopy(rows)

    def update(self, table: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            rows = self._load(table)
            if record_id not in rows:
                raise RecordNotFound(
                    f"No record {record_id!r} in table {table!r}", table=table,
                )
            safe = {k: v for k, v in changes.items() if k not in ("id", "seq")}
            rows[record_id].update(copy.deepcopy(safe))
            self._commit(table, rows)
            return copy.deepcopy(rows[record_id])

    def update_where(self, table: str, changes: dict[str, Any], **filters: Any) -> int:
        """Apply *changes* to every matching record; returns the count."""
        with self._lock:
            rows = self._load(table)
            matched = [rid for rid, r in rows.items() if _matches(r, filters)]
            safe = {k: v for k, v in changes.items() if k not in ("id", "seq")}
            for rid in matched:
                rows[rid].update(copy.deepcopy(safe))
            if matched:
                self._commit(table, rows)
            return len(matched)

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            rows = self._load(table)
            if record_id not in rows:
                return False
            del rows[record_id]
            self._commit(table, rows)
            return True

    def delete_where(self, table: str, **filters: Any) -> int:
        """Bulk delete; returns the count."""
        with self._lock:
            rows = self._load(table)
            doomed = [rid for rid, r in rows.items() if _matches(r, filters)]
            for rid in doomed:
                del rows[rid]
            if doomed:
                self._commit(table, rows)
            return len(doomed)


class MemoryRecordStore(RecordStore):
    """Process-local store backed by plain dicts."""

    def __init__(self) -> None:
        super().__init__()
        self._tables: dict[str, dict[str, dict]] = {}

    def _load(self, table: str) -> dict[str, dict]:
        return self._tables.setdefault(table, {})

    def _commit(self, table: str, rows: dict[str, dict]) -> None:
        self._tables[table] = rows


class JsonRecordStore(RecordStore):
    """File-backed store: ``<root>/<table>.json`` holds ``{id: record}``.

    Tables are re-read on every operation so aggregates are always computed
    from what is on disk, not from a stale in-process copy.  Writes go to a
    temp file followed by an atomic rename.

    Args:
        root_dir: Directory for the table files.  Created on first write.
    """

    def __init__(self, root_dir: str | Path) -> None:
        super().__init__()
        self._root = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root

    def _path_for(self, table: str) -> Path:
        if not table or "/" in table or "\\" in table or ".." in table:
            raise PersistenceError(f"Invalid table name {table!r}")
        return self._root / f"{table}.json"

    def _load(self, table: str) -> dict[str, dict]:
        path = self._path_for(table)
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.error("Failed to read table %s from %s: %s", table, path, exc)
            raise PersistenceError(f"Could not read table {table!r}: {exc}", table=table) from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Table file for {table!r} is not a JSON object", table=table)
        return data

    def _commit(self, table: str, rows: dict[str, dict]) -> None:
        path = self._path_for(table)
        tmp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(rows, f, separators=(",", ":"), sort_keys=True)
            tmp_path.replace(path)  # atomic rename
        except (OSError, TypeError) as exc:
            logger.error("Failed to write table %s to %s: %s", table, path, exc)
            raise PersistenceError(f"Could not write table {table!r}: {exc}", table=table) from exc
