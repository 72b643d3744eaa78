"""
Refund store: the persistence boundary of the refund lifecycle.

Every mutation runs as lock → validate → mutate → audit → commit inside one
transaction, so a row's status and its audit trail are committed together or
not at all.
"""
from datetime import datetime, timezone
from typing import Callable, Optional

from pos_refunds.engine.transitions import plan_transition
from pos_refunds.errors import NotFound
from pos_refunds.models.refund import RefundRequest, RefundStatus, RefundUpdate
from pos_refunds.models.settings import RefundSettings
from pos_refunds.repository.store import InMemoryStore, StoreTransaction, store
from pos_refunds.services import audit_service


class RefundStore:
    def __init__(self, backend: InMemoryStore, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._backend = backend
        self._clock = clock

    def create(self, refund: RefundRequest, audit: Callable[[StoreTransaction], None]) -> RefundRequest:
        """
        Insert a new row and its creation audit entries atomically.

        No row lock is taken: nobody else can reference an id that does not
        exist yet.

        Args:
            refund: The fully-populated new row.
            audit: Stages the creation audit entries in the same transaction.
        """
        with self._backend.transaction() as tx:
            tx.insert_refund(refund)
            audit(tx)
        return refund

    def get(self, refund_id: str) -> RefundRequest:
        refund = self._backend.get_refund(refund_id)
        if refund is None:
            raise NotFound(f"Refund {refund_id} not found", details={"refund_id": refund_id})
        return refund

    def list(
        self,
        order_id: Optional[str] = None,
        status: Optional[RefundStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RefundRequest]:
        """Committed rows, newest `requested_at` first. Takes no row locks."""
        rows = self._backend.list_refunds()
        if order_id:
            rows = [r for r in rows if r.order_id == order_id]
        if status is not None:
            rows = [r for r in rows if r.status == status]
        # Reversed insertion order keeps ties newest-first.
        rows = sorted(reversed(rows), key=lambda r: r.requested_at, reverse=True)
        if limit is None:
            return rows[offset:]
        return rows[offset:offset + limit]

    def apply_transition(
        self,
        refund_id: str,
        update: RefundUpdate,
        settings: RefundSettings,
    ) -> tuple[RefundRequest, RefundRequest]:
        """
        Apply a status change to one refund under an exclusive row lock.

        Returns:
            (previous, current) rows. For an idempotent resubmission both are
            the same unchanged row and nothing is written.

        Raises:
            NotFound: If no refund has this id.
            InvalidTransition: If the change is illegal; the transaction is rolled back.
            TransientStoreError: On lock timeout or any persistence failure.
        """
        with self._backend.transaction() as tx:
            current = tx.select_for_update(refund_id)
            if current is None:
                raise NotFound(f"Refund {refund_id} not found", details={"refund_id": refund_id})

            plan = plan_transition(current, update, settings.allowed_payment_methods, self._clock())
            if plan.noop:
                return current, current

            updated = current.model_copy(update=plan.changes)
            tx.update_refund(updated)
            audit_service.record_transition(tx, updated, plan.payload, plan.actor)
        return current, updated


refund_store = RefundStore(store)
