"""Payment reconciliation against SePay bank-transfer webhooks.

This module provides:
- Generation of unique memo tokens for pending payments
- Matching of webhook transfer memos to pending payments
- Search and export over stored payment state
- Lookup of transaction details on SePay
"""

from .models import (
    PaymentStatusFilter,
    TransferType,
    CreatePaymentRequest,
    CreatedPayment,
    SePayWebhook,
    WebhookMetadata,
    CallbackResult,
    SearchFilters,
    SearchResult,
    SEARCH_TIMEZONE,
)
from .tokens import (
    ALPHABET,
    Allocation,
    TokenGenerator,
    allocate_unique,
    allocate_unique_async,
    random_token,
)
from .matcher import MemoMatcher, memo_contains
from .gateway import SePayClient
from .service import ReconciliationEngine
from .export import SearchExporter

__all__ = [
    # Models
    "PaymentStatusFilter",
    "TransferType",
    "CreatePaymentRequest",
    "CreatedPayment",
    "SePayWebhook",
    "WebhookMetadata",
    "CallbackResult",
    "SearchFilters",
    "SearchResult",
    "SEARCH_TIMEZONE",
    # Tokens
    "ALPHABET",
    "Allocation",
    "TokenGenerator",
    "allocate_unique",
    "allocate_unique_async",
    "random_token",
    # Core Components
    "MemoMatcher",
    "memo_contains",
    "SePayClient",
    "ReconciliationEngine",
    "SearchExporter",
]
