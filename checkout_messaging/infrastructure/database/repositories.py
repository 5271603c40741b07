"""Data access layer for dismissal state"""

from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from checkout_messaging.domain.exceptions import StorageUnavailableError
from checkout_messaging.infrastructure.database.models import DismissalState
from checkout_messaging.infrastructure.observability.metrics import dismissal_storage_failures_counter


class SqlDismissalStore:
    """Durable key-value store scoped to one shopper session"""

    def __init__(self, db: Session, scope: str):
        self.db = db
        self.scope = scope

    def _find(self, key: str) -> Optional[DismissalState]:
        return (
            self.db.query(DismissalState)
            .filter(DismissalState.scope == self.scope, DismissalState.storage_key == key)
            .first()
        )

    def _fail(self, operation: str, error: SQLAlchemyError) -> StorageUnavailableError:
        self.db.rollback()
        dismissal_storage_failures_counter.labels(operation=operation).inc()
        return StorageUnavailableError(f"Dismissal store {operation} failed: {error}")

    def get(self, key: str) -> Optional[str]:
        """Stored value, or None when nothing was saved"""
        try:
            row = self._find(key)
        except SQLAlchemyError as e:
            raise self._fail("get", e) from e
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value"""
        try:
            row = self._find(key)
            if row is None:
                self.db.add(DismissalState(scope=self.scope, storage_key=key, value=value))
            else:
                row.value = value
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("set", e) from e

    def clear(self, key: str) -> None:
        try:
            row = self._find(key)
            if row is not None:
                self.db.delete(row)
                self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("clear", e) from e
