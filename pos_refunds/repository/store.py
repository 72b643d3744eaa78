"""
In-memory transaction provider with row-level locking.

No business logic, only data access primitives. Stands in for a relational
database: `select_for_update` takes an exclusive per-row lock that is held
until the transaction commits or rolls back, and commits become visible to
readers atomically.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from pos_refunds.config import STORE_LOCK_TIMEOUT_SECONDS
from pos_refunds.errors import RefundError, TransientStoreError
from pos_refunds.models.audit import AuditLogEntry
from pos_refunds.models.refund import RefundRequest

logger = logging.getLogger("refunds.store")


class StoreTransaction:
    """A unit of work. Writes are staged and applied together on commit."""

    def __init__(self, store: "InMemoryStore", lock_timeout: float):
        self._store = store
        self._lock_timeout = lock_timeout
        self._held: dict[str, threading.Lock] = {}
        self._staged_rows: dict[str, RefundRequest] = {}
        self._staged_audit: list[AuditLogEntry] = []
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def _ensure_open(self) -> None:
        if not self._open:
            raise RuntimeError("transaction is already closed")

    def select_for_update(self, refund_id: str) -> Optional[RefundRequest]:
        """
        Lock a row exclusively for the rest of this transaction and return it.

        Returns None, without registering anything, when no committed row has
        this id.
        """
        self._ensure_open()
        if refund_id not in self._held:
            lock = self._store._row_lock(refund_id)
            if lock is None:
                return None
            if not lock.acquire(timeout=self._lock_timeout):
                raise TransientStoreError(
                    f"Timed out waiting for lock on refund {refund_id}",
                    details={"refund_id": refund_id, "lock_timeout_seconds": self._lock_timeout},
                    code="LOCK_TIMEOUT",
                )
            self._held[refund_id] = lock
        if refund_id in self._staged_rows:
            return self._staged_rows[refund_id]
        return self._store.get_refund(refund_id)

    def insert_refund(self, refund: RefundRequest) -> None:
        self._ensure_open()
        if refund.id in self._staged_rows or self._store.get_refund(refund.id) is not None:
            raise TransientStoreError(f"Refund {refund.id} already exists", code="DUPLICATE_KEY")
        self._staged_rows[refund.id] = refund

    def update_refund(self, refund: RefundRequest) -> None:
        self._ensure_open()
        if refund.id not in self._held:
            raise RuntimeError(f"refund {refund.id} must be locked before it is updated")
        self._staged_rows[refund.id] = refund

    def append_audit(self, entry: AuditLogEntry) -> None:
        """Append-only audit log. No update or delete."""
        self._ensure_open()
        self._staged_audit.append(entry)

    def commit(self) -> None:
        self._ensure_open()
        try:
            self._store._apply(self._staged_rows, self._staged_audit)
        finally:
            self._close()

    def rollback(self) -> None:
        if self._open:
            self._close()

    def _close(self) -> None:
        self._open = False
        self._staged_rows = {}
        self._staged_audit = []
        held, self._held = self._held, {}
        for lock in held.values():
            lock.release()


class InMemoryStore:
    """Thread-safe in-memory store for refund rows and audit entries."""

    def __init__(self, lock_timeout: float = STORE_LOCK_TIMEOUT_SECONDS):
        self.lock_timeout = lock_timeout
        # Guards the committed state and the row-lock registry.
        self._lock = threading.Lock()
        self._refunds: dict[str, RefundRequest] = {}
        self._row_locks: dict[str, threading.Lock] = {}
        self._audit_log: list[AuditLogEntry] = []

    # ── Transactions ────────────────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """
        Run a block inside one transaction.

        Commits when the block exits normally. Domain errors roll back and
        propagate unchanged; anything else rolls back and propagates as
        TransientStoreError.
        """
        tx = StoreTransaction(self, self.lock_timeout)
        try:
            yield tx
        except RefundError:
            tx.rollback()
            raise
        except Exception as exc:
            tx.rollback()
            logger.exception("transaction rolled back after unexpected error")
            raise TransientStoreError("Transaction aborted; no changes were committed") from exc

        if not tx.is_open:
            return
        try:
            tx.commit()
        except Exception as exc:
            logger.exception("commit failed")
            raise TransientStoreError("Commit failed; no changes were committed") from exc

    def _row_lock(self, refund_id: str) -> Optional[threading.Lock]:
        """The lock of a committed row; None for ids that were never committed."""
        with self._lock:
            return self._row_locks.get(refund_id)

    def _apply(self, rows: dict[str, RefundRequest], audit: list[AuditLogEntry]) -> None:
        with self._lock:
            for refund_id in rows:
                # Locks exist only for committed rows.
                if refund_id not in self._row_locks:
                    self._row_locks[refund_id] = threading.Lock()
            self._refunds.update(rows)
            self._audit_log.extend(audit)

    # ── Refunds ─────────────────────────────────────────────────────────────

    def get_refund(self, refund_id: str) -> Optional[RefundRequest]:
        with self._lock:
            return self._refunds.get(refund_id)

    def list_refunds(self) -> list[RefundRequest]:
        """Committed rows in insertion order."""
        with self._lock:
            return list(self._refunds.values())

    # ── Audit ────────────────────────────────────────────────────────────────

    def get_audit_log(self, refund_id: Optional[str] = None) -> list[AuditLogEntry]:
        with self._lock:
            entries = list(self._audit_log)

        if refund_id:
            entries = [e for e in entries if e.refund_id == refund_id]
        return entries


# Global singleton shared by every request handler
store = InMemoryStore()
