"""Database module for payment persistence."""

from .models import (
    Base,
    Payment,
    TXN_ID_MAX_LENGTH,
    REF_MAX_LENGTH,
    CONTENT_MAX_LENGTH,
)
from .session import (
    is_sqlite_memory,
    create_async_engine,
    get_async_session_factory,
    DatabaseManager,
)
from .repository import (
    PaymentRepository,
    violated_unique_field,
    escape_like,
)

__all__ = [
    # Models
    "Base",
    "Payment",
    "TXN_ID_MAX_LENGTH",
    "REF_MAX_LENGTH",
    "CONTENT_MAX_LENGTH",
    # Session management
    "is_sqlite_memory",
    "create_async_engine",
    "get_async_session_factory",
    "DatabaseManager",
    # Repositories
    "PaymentRepository",
    "violated_unique_field",
    "escape_like",
]
