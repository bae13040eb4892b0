"""Repository layer for payment persistence operations."""

import logging
from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Payment,
    REF_UNIQUE_CONSTRAINT,
    CONTENT_UNIQUE_CONSTRAINT,
    TXN_ID_UNIQUE_CONSTRAINT,
)

logger = logging.getLogger(__name__)

# Markers a unique violation carries in its driver message, per constraint.
# PostgreSQL reports the constraint name, SQLite reports "table.column".
_CONSTRAINT_MARKERS = {
    "ref": (REF_UNIQUE_CONSTRAINT, "payment.ref"),
    "content": (CONTENT_UNIQUE_CONSTRAINT, "payment.content"),
    "txn_id": (TXN_ID_UNIQUE_CONSTRAINT, "payment.txn_id"),
}


def violated_unique_field(error: IntegrityError) -> Optional[str]:
    """Return which unique field an IntegrityError is about, if recognizable.

    Args:
        error: IntegrityError raised by a flush or statement.

    Returns:
        ``"ref"``, ``"content"``, ``"txn_id"`` or None.
    """
    detail = str(error.orig) if error.orig is not None else str(error)
    for field, markers in _CONSTRAINT_MARKERS.items():
        if any(marker in detail for marker in markers):
            return field
    return None


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


class PaymentRepository:
    """Repository for Payment reads and writes."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session

    async def create(self, amount: int, ref: str, content: str) -> Payment:
        """Insert a new pending payment.

        Args:
            amount: Payment amount in minor units.
            ref: Caller supplied business reference.
            content: Generated memo token.

        Returns:
            Created Payment instance.

        Raises:
            IntegrityError: If a unique constraint rejects the row.
        """
        payment = Payment(amount=amount, ref=ref, content=content, status=False)

        self.session.add(payment)
        await self.session.flush()

        logger.info(f"Created payment {payment.id} ref={ref} content={content}")
        return payment

    async def ref_exists(self, ref: str) -> bool:
        result = await self.session.execute(
            select(Payment.id).where(Payment.ref == ref).limit(1)
        )
        return result.first() is not None

    async def content_exists(self, content: str) -> bool:
        """Check every record, paid or pending, for ``content``."""
        result = await self.session.execute(
            select(Payment.id).where(Payment.content == content).limit(1)
        )
        return result.first() is not None

    async def list_pending_by_amount(self, amount: int) -> List[Payment]:
        """List unpaid payments with exactly ``amount``, oldest id first.

        Args:
            amount: Transfer amount reported by the gateway.

        Returns:
            List of pending Payment instances.
        """
        result = await self.session.execute(
            select(Payment)
            .where(
                and_(
                    Payment.amount == amount,
                    Payment.status.is_(False),
                )
            )
            .order_by(Payment.id)
        )
        return list(result.scalars().all())

    async def mark_paid(
        self,
        payment_id: int,
        txn_id: str,
        paid_at: Optional[datetime] = None,
    ) -> bool:
        """Transition one pending payment to paid.

        The statement only touches the row with ``payment_id`` and only while
        it is still pending, so two deliveries racing for the same record
        cannot both succeed.

        Args:
            payment_id: Primary key of the payment.
            txn_id: Gateway transaction reference.
            paid_at: Timestamp to store as ``updated_at``.

        Returns:
            True if the row was updated, False if it was no longer pending.
        """
        result = await self.session.execute(
            update(Payment)
            .where(
                and_(
                    Payment.id == payment_id,
                    Payment.status.is_(False),
                )
            )
            .values(
                status=True,
                txn_id=txn_id,
                updated_at=paid_at or datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        updated = result.rowcount == 1
        if updated:
            logger.info(f"Marked payment {payment_id} as paid with txn_id={txn_id}")
        return updated

    async def search(
        self,
        ref: Optional[str] = None,
        content: Optional[str] = None,
        status: Optional[bool] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> List[Payment]:
        """Search payments; every supplied filter must hold.

        Args:
            ref: Substring of the business reference.
            content: Substring of the memo token.
            status: True for paid, False for unpaid.
            created_from: Inclusive lower bound on ``created_at`` (naive UTC).
            created_to: Inclusive upper bound on ``created_at`` (naive UTC).

        Returns:
            Matching payments ordered by creation time ascending.
        """
        conditions = []

        if ref:
            conditions.append(Payment.ref.like(f"%{escape_like(ref)}%", escape="\\"))
        if content:
            conditions.append(Payment.content.like(f"%{escape_like(content)}%", escape="\\"))
        if status is not None:
            conditions.append(Payment.status.is_(status))
        if created_from is not None:
            conditions.append(Payment.created_at >= created_from)
        if created_to is not None:
            conditions.append(Payment.created_at <= created_to)

        stmt = select(Payment)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(Payment.created_at, Payment.id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
