"""Request and result models for payment reconciliation."""

import enum
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..database.models import REF_MAX_LENGTH, TXN_ID_MAX_LENGTH

# Calendar dates in search filters are interpreted in Vietnam time
SEARCH_TIMEZONE = timezone(timedelta(hours=7))


class PaymentStatusFilter(str, enum.Enum):
    """Status values accepted by the search surface."""
    PAID = "paid"
    UNPAID = "unpaid"

    def as_bool(self) -> bool:
        return self is PaymentStatusFilter.PAID


class TransferType(str, enum.Enum):
    """Direction of a bank transfer reported by SePay."""
    IN = "in"
    OUT = "out"


class CreatePaymentRequest(BaseModel):
    """Body of a payment initialization request."""
    amount: int = Field(..., gt=0, description="Payment amount in minor units")
    ref: str = Field(..., min_length=1, max_length=REF_MAX_LENGTH, description="Reference code")

    @field_validator("ref")
    @classmethod
    def _ref_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("ref must not be blank")
        return value


class CreatedPayment(BaseModel):
    """Identifiers a client needs to ask the payer for a transfer."""
    content: str
    ref: str
    amount: int


class SePayWebhook(BaseModel):
    """Transfer notification posted by SePay.

    Only ``content``, ``transferAmount`` and ``referenceCode`` drive matching;
    the other fields are kept for the audit log.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    gateway: Optional[str] = None
    transactionDate: Optional[str] = None
    accountNumber: Optional[str] = None
    code: Optional[str] = None
    content: str = Field(..., description="Free-text transfer memo")
    transferType: Optional[TransferType] = None
    transferAmount: int = Field(..., description="Transferred amount")
    accumulated: Optional[int] = None
    subAccount: Optional[str] = None
    referenceCode: str = Field(..., min_length=1, max_length=TXN_ID_MAX_LENGTH)
    description: Optional[str] = None

    @property
    def is_incoming(self) -> bool:
        return self.transferType in (None, TransferType.IN)


class WebhookMetadata(BaseModel):
    """Where a webhook came from, recorded for audit only."""
    ip: Optional[str] = None
    origin: Optional[str] = None
    referer: Optional[str] = None
    user_agent: Optional[str] = None
    body: Dict[str, Any] = Field(default_factory=dict)


class CallbackResult(BaseModel):
    """Outcome of a reconciled webhook."""
    success: bool = True
    message: str = "Payment processed successfully"
    payment_id: Optional[int] = None
    ref: Optional[str] = None
    txn_id: Optional[str] = None


class SearchFilters(BaseModel):
    """Optional, AND-combined filters over stored payments."""
    model_config = ConfigDict(populate_by_name=True)

    ref: Optional[str] = None
    content: Optional[str] = None
    status: Optional[PaymentStatusFilter] = None
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")

    @model_validator(mode="after")
    def _check_range(self) -> "SearchFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("'from' must not be after 'to'")
        return self

    @property
    def paid(self) -> Optional[bool]:
        return self.status.as_bool() if self.status is not None else None

    @property
    def created_from(self) -> Optional[datetime]:
        """Start of ``date_from`` at UTC+7, as a naive UTC datetime."""
        if self.date_from is None:
            return None
        return _local_to_naive_utc(self.date_from, time(0, 0, 0))

    @property
    def created_to(self) -> Optional[datetime]:
        """23:59:59 of ``date_to`` at UTC+7, as a naive UTC datetime."""
        if self.date_to is None:
            return None
        return _local_to_naive_utc(self.date_to, time(23, 59, 59))


def _local_to_naive_utc(day: date, moment: time) -> datetime:
    local = datetime.combine(day, moment, tzinfo=SEARCH_TIMEZONE)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


class SearchResult(BaseModel):
    """Search response: mapped records and how many there are."""
    data: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
