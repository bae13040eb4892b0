# payfastacy package
__version__ = "0.1.0"

from .config import Settings, MatchPolicy
from .errors import (
    PaymentError,
    DuplicateReference,
    GenerationExhausted,
    NoMatchingPayment,
    AmbiguousMatch,
    InvalidRequest,
    PersistenceError,
    UpstreamError,
    ConfigurationError,
)
from .database import Payment, PaymentRepository, DatabaseManager

# Reconciliation exports
from .reconciliation import (
    ReconciliationEngine,
    TokenGenerator,
    MemoMatcher,
    SePayClient,
    SearchFilters,
    SearchResult,
    SePayWebhook,
)
