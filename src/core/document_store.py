"""Keyed document store on top of Supabase tables.

Reconciliation needs two distinct write primitives and never mixes them:

- ``create_if_absent``: an atomic insert that relies on the table's primary
  key. A unique violation means another request already created the row.
- ``merge_update``: an unconditional partial update that can be applied
  any number of times with the same result.

Transient datastore errors are retried a bounded number of times with
exponential backoff before surfacing as ``StorageError``.
"""

import logging
from functools import lru_cache
from typing import Any, Callable, TypeVar

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings
from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL unique_violation
UNIQUE_VIOLATION_CODE = "23505"


class StorageError(Exception):
    """Raised when a datastore operation fails after all retries."""

    def __init__(self, operation: str, table: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.table = table
        self.cause = cause
        super().__init__(f"{operation} on '{table}' failed: {cause}")


class _TransientStorageError(Exception):
    """Internal marker for errors worth retrying."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(str(cause))


class DocumentStore:
    """Document-style access to Supabase tables."""

    def __init__(
        self,
        client: Client | None = None,
        retry_attempts: int | None = None,
        retry_max_wait_seconds: float | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Supabase client. Defaults to the shared singleton.
            retry_attempts: Attempts per operation. Defaults to settings.
            retry_max_wait_seconds: Backoff ceiling. Defaults to settings.
        """
        settings = get_settings()
        self.client = client or get_supabase_client()
        self.retry_attempts = retry_attempts or settings.storage_retry_attempts
        self.retry_max_wait_seconds = (
            settings.storage_retry_max_wait_seconds
            if retry_max_wait_seconds is None
            else retry_max_wait_seconds
        )

    def _run(self, operation: str, table: str, fn: Callable[[], T]) -> T:
        """Run a datastore call with bounded retries.

        Unique violations are never retried; they are returned to the
        caller as-is so create-if-absent can interpret them.
        """

        def attempt() -> T:
            try:
                return fn()
            except PostgrestAPIError as e:
                if e.code == UNIQUE_VIOLATION_CODE:
                    raise
                raise _TransientStorageError(e) from e
            except httpx.HTTPError as e:
                raise _TransientStorageError(e) from e

        retrying = Retrying(
            retry=retry_if_exception_type(_TransientStorageError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.1, min=0, max=self.retry_max_wait_seconds),
            reraise=True,
        )
        try:
            return retrying(attempt)
        except _TransientStorageError as e:
            logger.error(
                "Datastore %s on %s failed after %d attempts: %s",
                operation,
                table,
                self.retry_attempts,
                e.cause,
            )
            raise StorageError(operation, table, e.cause) from e.cause

    def get(self, table: str, key_field: str, key: str) -> dict[str, Any] | None:
        """Fetch a single document by key.

        Returns:
            dict | None: The document or None if absent.
        """
        response = self._run(
            "get",
            table,
            lambda: self.client.table(table).select("*").eq(key_field, key).limit(1).execute(),
        )
        return response.data[0] if response and response.data else None

    def find_one(self, table: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """Fetch the first document matching all equality filters."""
        rows = self.find_many(table, filters, limit=1)
        return rows[0] if rows else None

    def find_many(
        self,
        table: str,
        filters: dict[str, Any],
        order_by: str | None = None,
        desc: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch documents matching all equality filters."""

        def query() -> Any:
            builder = self.client.table(table).select("*")
            for field_name, value in filters.items():
                builder = builder.eq(field_name, value)
            if order_by:
                builder = builder.order(order_by, desc=desc)
            if limit is not None:
                builder = builder.limit(limit)
            return builder.execute()

        response = self._run("find", table, query)
        return response.data or []

    def create_if_absent(self, table: str, document: dict[str, Any]) -> bool:
        """Insert a document unless its primary key already exists.

        Atomicity comes from the primary-key constraint, so two concurrent
        callers can never both succeed.

        Returns:
            bool: True if this call created the document, False if it existed.
        """
        try:
            self._run("create", table, lambda: self.client.table(table).insert(document).execute())
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION_CODE:
                logger.debug("Document already exists in %s", table)
                return False
            raise
        return True

    def insert(self, table: str, document: dict[str, Any]) -> dict[str, Any]:
        """Append a document to a table with a surrogate key."""
        response = self._run("insert", table, lambda: self.client.table(table).insert(document).execute())
        return response.data[0] if response.data else document

    def merge_update(
        self,
        table: str,
        key_field: str,
        key: str,
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Merge fields into an existing document.

        Returns:
            dict | None: The updated document, or None if no row matched.
        """
        response = self._run(
            "update",
            table,
            lambda: self.client.table(table).update(changes).eq(key_field, key).execute(),
        )
        return response.data[0] if response.data else None


@lru_cache
def get_document_store() -> DocumentStore:
    """Get cached document store singleton."""
    return DocumentStore()
