# =============================================================================
# caretrack_core/data/supabase_client.py
# Supabase Client Configuration and Remote Session Store
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Protocol

from supabase import Client, ClientOptions, create_client

from caretrack_core.config import AppConfig
from caretrack_core.data.metrics import METRICS
from caretrack_core.data.session_model import TEXT_FIELDS, Session, from_record, to_record
from caretrack_core.errors import RemoteStoreError
from caretrack_core.logging import get_logger

logger = get_logger(__name__)

# Supabase caps a single select at 1000 rows
PAGE_SIZE = 1000


def create_supabase_client(config: AppConfig) -> Client:
    """
    Build a Supabase client from configuration.

    Every PostgREST call made through the client carries config.remote_timeout;
    a timed-out call raises and is treated as a failed write by callers.

    Raises:
        ConfigurationError: when the URL or key is missing
    """
    config.require_supabase()
    options = ClientOptions(postgrest_client_timeout=config.remote_timeout)
    return create_client(config.supabase_url, config.supabase_key, options=options)


class RemoteStore(Protocol):
    """Calls the core makes into the hosted record store."""

    def create(self, session: Session) -> Session:
        ...

    def fetch(self, filters: Optional[Mapping[str, Any]] = None) -> List[Session]:
        ...

    def update(self, session: Session) -> Session:
        ...

    def delete(self, session_id: str) -> None:
        ...


def _editable_columns() -> List[str]:
    columns = list(TEXT_FIELDS)
    for metric in METRICS:
        columns.extend([metric.numerator_column, metric.denominator_column])
    return columns


class SupabaseSessionStore:
    """
    Session CRUD against a Supabase table.

    Every failure (HTTP error, timeout, empty response) surfaces as
    RemoteStoreError so the write path can fall back to the pending queue.
    """

    def __init__(self, client: Client, table_name: str = "sessions"):
        self.client = client
        self.table_name = table_name

    def _fail(self, operation: str, error: Exception) -> RemoteStoreError:
        logger.warning(f"Supabase {operation} on {self.table_name} failed: {error}")
        return RemoteStoreError(
            f"Remote {operation} failed: {error}",
            operation=operation,
            table=self.table_name,
        )

    def create(self, session: Session) -> Session:
        """
        Insert a session and return it with the server id and timestamp.

        Args:
            session: Session to create (its id and created_at are ignored)
        """
        payload = to_record(session)
        try:
            response = self.client.table(self.table_name).insert(payload).execute()
        except Exception as e:
            raise self._fail("create", e) from e

        if not response.data:
            raise RemoteStoreError(
                "Remote create returned no row",
                operation="create",
                table=self.table_name,
            )
        return from_record(response.data[0])

    def fetch(self, filters: Optional[Mapping[str, Any]] = None) -> List[Session]:
        """
        Fetch ALL sessions matching field-equality filters (paginated).

        Args:
            filters: {column: value}; a list/tuple/set value matches any of
                its members (e.g. {"hospital": my_hospitals}). None fetches the
                whole cross-tenant population.

        Returns:
            Sessions ordered by date, then creation time
        """
        filters = dict(filters or {})
        for column, value in filters.items():
            if isinstance(value, (list, tuple, set)) and not value:
                # "in ()" can never match
                return []

        rows: List[Dict[str, Any]] = []
        offset = 0
        try:
            while True:
                query = self.client.table(self.table_name).select("*")
                for column, value in filters.items():
                    if isinstance(value, (list, tuple, set)):
                        query = query.in_(column, list(value))
                    else:
                        query = query.eq(column, value)

                query = query.order("date").order("created_at")
                response = query.range(offset, offset + PAGE_SIZE - 1).execute()

                if not response.data:
                    break
                rows.extend(response.data)
                # Fewer than a full page means we've reached the end
                if len(response.data) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except Exception as e:
            raise self._fail("fetch", e) from e

        return [from_record(row) for row in rows]

    def update(self, session: Session) -> Session:
        """Replace the mutable fields of an existing session."""
        record = to_record(session)
        payload = {column: record[column] for column in _editable_columns()}
        try:
            response = (
                self.client.table(self.table_name)
                .update(payload)
                .eq("id", session.id)
                .execute()
            )
        except Exception as e:
            raise self._fail("update", e) from e

        if response.data:
            return from_record(response.data[0])
        return session

    def delete(self, session_id: str) -> None:
        try:
            self.client.table(self.table_name).delete().eq("id", session_id).execute()
        except Exception as e:
            raise self._fail("delete", e) from e
