"""In-memory DataStore used by the unit tests.

Honours the same filter semantics as ``SupabaseDataStore``: list values mean
``IN``, ``None`` means ``IS NULL`` and anything else is equality. Failures
can be queued per table and operation with ``fail``.
"""

import copy
import itertools
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from infrastructure.persistence import StoreError, StoreResponse

UNIQUE_KEYS = {"group_memberships": ("group_id", "user_id")}

CONNECTION_ERROR = StoreError(message="connection reset", code="CONNECTION_ERROR")

_EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)


def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            if row.get(column) not in value:
                return False
        elif value is None:
            if row.get(column) is not None:
                return False
        elif row.get(column) != value:
            return False
    return True


class InMemoryDataStore:
    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self._failures: Dict[Tuple[str, str], List[StoreError]] = defaultdict(list)
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)

    # -- test helpers ---------------------------------------------------

    def seed(self, table: str, **row: Any) -> Dict[str, Any]:
        stored = self._prepare(table, row)
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    def rows(self, table: str, **filters: Any) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(row) for row in self.tables[table] if _matches(row, filters)
        ]

    def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        rows = self.rows(table, id=row_id)
        return rows[0] if rows else None

    def fail(
        self,
        table: str,
        operation: str,
        error: StoreError = CONNECTION_ERROR,
        times: int = 1,
    ) -> None:
        """Make the next ``times`` calls of ``operation`` on ``table`` fail."""
        self._failures[(table, operation)].extend([error] * times)

    def count(self, table: str, operation: str) -> int:
        return self.calls.count((table, operation))

    # -- DataStore --------------------------------------------------------

    async def select(
        self,
        table: str,
        filters=None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> StoreResponse:
        failure = self._record(table, "select")
        if failure:
            return StoreResponse(error=failure)
        rows = [copy.deepcopy(r) for r in self.tables[table] if _matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return StoreResponse(data=rows)

    async def select_one(self, table: str, filters, columns: str = "*"):
        response = await self.select(table, filters, columns=columns, limit=1)
        if response.error:
            return response
        return StoreResponse(data=response.data[0] if response.data else None)

    async def insert(self, table: str, payload: Dict[str, Any]) -> StoreResponse:
        failure = self._record(table, "insert")
        if failure:
            return StoreResponse(error=failure)
        keys = UNIQUE_KEYS.get(table)
        if keys and any(
            all(row.get(k) == payload.get(k) for k in keys)
            for row in self.tables[table]
        ):
            return StoreResponse(
                error=StoreError(
                    message="duplicate key value violates unique constraint",
                    code="23505",
                )
            )
        stored = self._prepare(table, dict(payload))
        self.tables[table].append(stored)
        return StoreResponse(data=copy.deepcopy(stored))

    async def update(self, table: str, values: Dict[str, Any], filters):
        failure = self._record(table, "update")
        if failure:
            return StoreResponse(error=failure)
        updated = []
        for row in self.tables[table]:
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(row))
        return StoreResponse(data=updated)

    async def delete(self, table: str, filters) -> StoreResponse:
        failure = self._record(table, "delete")
        if failure:
            return StoreResponse(error=failure)
        kept, deleted = [], []
        for row in self.tables[table]:
            (deleted if _matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return StoreResponse(data=deleted)

    # -- internals --------------------------------------------------------

    def _record(self, table: str, operation: str) -> Optional[StoreError]:
        self.calls.append((table, operation))
        queued = self._failures.get((table, operation))
        if queued:
            return queued.pop(0)
        return None

    def _prepare(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row.setdefault("id", f"{table}-{next(self._ids)}")
        row.setdefault(
            "created_at", (_EPOCH + timedelta(seconds=next(self._ticks))).isoformat()
        )
        return row
