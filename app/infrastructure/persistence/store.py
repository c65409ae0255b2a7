"""Row-oriented access to the remote relational store.

Every call returns a ``StoreResponse`` carrying either ``data`` or an
``error``; this is the lowest layer allowed to see a raised exception and it
converts every one of them into a ``StoreError``. Callers must check
``error`` before trusting ``data``.

Filters are plain mappings:
    {"group_id": "g1"}              -> group_id = 'g1'
    {"status": ["active", "pending"]} -> status IN ('active', 'pending')
    {"journey_status": None}        -> journey_status IS NULL
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from postgrest.exceptions import APIError
from supabase import AsyncClient

from infrastructure.logging import get_module_logger

logger = get_module_logger()

Filters = Mapping[str, Any]


@dataclass(frozen=True)
class StoreError:
    """Error reported by the remote store.

    Attributes:
        message: Message returned by the store (or the transport).
        code: Store error code (PostgREST / Postgres SQLSTATE, or
            ``CONNECTION_ERROR`` for transport failures).
        details: Optional extra detail returned by the store.
    """

    message: str
    code: Optional[str] = None
    details: Optional[str] = None


@dataclass(frozen=True)
class StoreResponse:
    """``{data, error}`` pair returned by every store call."""

    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class DataStore(Protocol):
    """Async row store used by the authorization engine and the services."""

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> StoreResponse:
        """Return matching rows as a list of dicts."""
        ...

    async def select_one(
        self, table: str, filters: Filters, columns: str = "*"
    ) -> StoreResponse:
        """Return the first matching row as a dict, or ``None``."""
        ...

    async def insert(self, table: str, payload: Dict[str, Any]) -> StoreResponse:
        """Insert one row and return it as a dict."""
        ...

    async def update(
        self, table: str, values: Dict[str, Any], filters: Filters
    ) -> StoreResponse:
        """Update matching rows and return them as a list of dicts."""
        ...

    async def delete(self, table: str, filters: Filters) -> StoreResponse:
        """Delete matching rows and return them as a list of dicts."""
        ...


def _apply_filters(query: Any, filters: Optional[Filters]) -> Any:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.in_(column, list(value))
        elif value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    return query


def _store_error_from_exception(exc: Exception) -> StoreError:
    if isinstance(exc, APIError):
        return StoreError(
            message=exc.message or str(exc),
            code=exc.code,
            details=exc.details,
        )
    return StoreError(
        message=f"{type(exc).__name__}: {exc}",
        code="CONNECTION_ERROR",
    )


class SupabaseDataStore:
    """DataStore backed by the supabase async client.

    Row-level access policies are enforced by the remote store for the
    session attached to ``client``.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _run(self, table: str, operation: str, query: Any) -> StoreResponse:
        try:
            response = await query.execute()
        except Exception as e:  # pylint: disable=broad-except
            error = _store_error_from_exception(e)
            logger.warning(
                "store_call_failed",
                table=table,
                operation=operation,
                error_code=error.code,
                error=error.message,
            )
            return StoreResponse(error=error)
        return StoreResponse(data=response.data)

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> StoreResponse:
        query = _apply_filters(self.client.table(table).select(columns), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        response = await self._run(table, "select", query)
        if response.ok and response.data is None:
            return StoreResponse(data=[])
        return response

    async def select_one(
        self, table: str, filters: Filters, columns: str = "*"
    ) -> StoreResponse:
        response = await self.select(table, filters, columns=columns, limit=1)
        if not response.ok:
            return response
        rows = response.data or []
        return StoreResponse(data=rows[0] if rows else None)

    async def insert(self, table: str, payload: Dict[str, Any]) -> StoreResponse:
        response = await self._run(
            table, "insert", self.client.table(table).insert(payload)
        )
        if not response.ok:
            return response
        rows = response.data or []
        if not rows:
            return StoreResponse(
                error=StoreError(message=f"Insert into {table} returned no row")
            )
        return StoreResponse(data=rows[0])

    async def update(
        self, table: str, values: Dict[str, Any], filters: Filters
    ) -> StoreResponse:
        query = _apply_filters(self.client.table(table).update(values), filters)
        response = await self._run(table, "update", query)
        if response.ok and response.data is None:
            return StoreResponse(data=[])
        return response

    async def delete(self, table: str, filters: Filters) -> StoreResponse:
        query = _apply_filters(self.client.table(table).delete(), filters)
        response = await self._run(table, "delete", query)
        if response.ok and response.data is None:
            return StoreResponse(data=[])
        return response
