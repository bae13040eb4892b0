"""SQLAlchemy models for payment persistence."""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Column widths shared with the migration and request validation
TXN_ID_MAX_LENGTH = 100
REF_MAX_LENGTH = 50
CONTENT_MAX_LENGTH = 20

REF_UNIQUE_CONSTRAINT = "payment_ref_unique"
CONTENT_UNIQUE_CONSTRAINT = "payment_content_unique"
TXN_ID_UNIQUE_CONSTRAINT = "payment_txn_id_unique"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Payment(Base):
    """A payment request waiting for, or reconciled against, a bank transfer."""
    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    txn_id: Mapped[Optional[str]] = mapped_column(String(TXN_ID_MAX_LENGTH), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    ref: Mapped[str] = mapped_column(String(REF_MAX_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(String(CONTENT_MAX_LENGTH), nullable=False)

    # False until a matching transfer has been received
    status: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("txn_id", name=TXN_ID_UNIQUE_CONSTRAINT),
        UniqueConstraint("ref", name=REF_UNIQUE_CONSTRAINT),
        UniqueConstraint("content", name=CONTENT_UNIQUE_CONSTRAINT),
        Index("ix_payment_created_at", "created_at"),
        Index("ix_payment_amount_status", "amount", "status"),
    )

    def to_created_dict(self) -> Dict[str, Any]:
        """The short view returned right after a payment is initialized."""
        return {
            "content": self.content,
            "ref": self.ref,
            "amount": self.amount,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert payment to dictionary representation."""
        return {
            "id": self.id,
            "txnId": self.txn_id,
            "amount": self.amount,
            "ref": self.ref,
            "content": self.content,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Payment id={self.id} ref={self.ref!r} content={self.content!r} status={self.status}>"
