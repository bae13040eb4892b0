"""Service layer owning the payment lifecycle: create, reconcile, search."""

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import PaymentRepository, violated_unique_field
from ..errors import (
    DuplicateReference,
    InvalidRequest,
    NoMatchingPayment,
    PersistenceError,
)
from .matcher import MemoMatcher
from .models import (
    CallbackResult,
    CreatedPayment,
    SearchFilters,
    SearchResult,
    SePayWebhook,
    WebhookMetadata,
)
from .tokens import TokenGenerator

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("payfastacy.audit")


class ReconciliationEngine:
    """Creates payment requests and settles them from SePay webhooks.

    One engine wraps one database session; every public method commits its
    own writes. Uniqueness and the single pending-to-paid transition are
    enforced by the database, so engines serving concurrent requests need no
    shared state.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        token_generator: Optional[TokenGenerator] = None,
        matcher: Optional[MemoMatcher] = None,
    ):
        """Initialize the engine.

        Args:
            session: Async database session.
            settings: Service configuration. Defaults are used if omitted.
            token_generator: Optional generator override.
            matcher: Optional memo matcher override.
        """
        self.session = session
        self.settings = settings or Settings()
        self.payment_repo = PaymentRepository(session)
        self.tokens = token_generator or TokenGenerator(
            exists=self.payment_repo.content_exists,
            length=self.settings.content_length,
            max_attempts=self.settings.content_max_attempts,
        )
        self.matcher = matcher or MemoMatcher(
            policy=self.settings.match_policy,
            whole_token=self.settings.match_whole_token,
        )

    async def create_payment(self, amount: int, ref: str) -> CreatedPayment:
        """Register a pending payment and allocate its memo token.

        Args:
            amount: Amount the payer must transfer, in minor units.
            ref: Caller supplied business reference, unique per payment.

        Returns:
            The content, ref and amount of the new payment.

        Raises:
            DuplicateReference: If ``ref`` is already used.
            GenerationExhausted: If no free token could be drawn.
            PersistenceError: On any other database failure.
        """
        if amount < self.settings.min_amount:
            raise InvalidRequest(f"Amount must be at least {self.settings.min_amount}")

        try:
            if await self.payment_repo.ref_exists(ref):
                logger.info(f"Rejected payment for existing ref {ref}")
                raise DuplicateReference()

            content = await self.tokens.generate_unique_content()
            payment = await self.payment_repo.create(amount=amount, ref=ref, content=content)
            await self.session.commit()

        except IntegrityError as e:
            await self.session.rollback()
            # Lost a race with a concurrent request using the same ref
            if violated_unique_field(e) == "ref":
                logger.info(f"Concurrent insert for ref {ref} rejected by the database")
                raise DuplicateReference() from e
            logger.error(f"Payment insert for ref {ref} violated a constraint: {e.orig}")
            raise PersistenceError("Failed to store payment") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error while creating payment {ref}: {e}")
            raise PersistenceError() from e

        return CreatedPayment(**payment.to_created_dict())

    async def process_callback(
        self,
        webhook_content: str,
        transfer_amount: int,
        reference_code: str,
    ) -> CallbackResult:
        """Settle the pending payment referenced by a transfer memo.

        Candidates are unpaid payments with exactly ``transfer_amount`` whose
        content occurs in ``webhook_content``. Paid records never qualify, so
        a redelivered webhook ends in NoMatchingPayment instead of a second
        update.

        Args:
            webhook_content: Free-text transfer memo.
            transfer_amount: Amount received.
            reference_code: Gateway transaction reference to store as txn_id.

        Returns:
            CallbackResult describing the settled payment.

        Raises:
            NoMatchingPayment: If nothing matches or the match was settled
                concurrently.
            AmbiguousMatch: If several payments match under the strict policy.
            PersistenceError: On database failure.
        """
        try:
            candidates = await self.payment_repo.list_pending_by_amount(transfer_amount)
            payment = self.matcher.select(webhook_content, candidates)

            updated = await self.payment_repo.mark_paid(
                payment_id=payment.id,
                txn_id=reference_code,
                paid_at=datetime.utcnow(),
            )
            if not updated:
                await self.session.rollback()
                logger.warning(f"Payment {payment.id} was settled by another delivery")
                raise NoMatchingPayment()

            await self.session.commit()
            await self.session.refresh(payment)

        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Transaction {reference_code} could not be recorded: {e.orig}")
            if violated_unique_field(e) == "txn_id":
                raise PersistenceError(
                    f"Transaction {reference_code} is already recorded"
                ) from e
            raise PersistenceError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error while processing callback {reference_code}: {e}")
            raise PersistenceError() from e

        logger.info(
            f"Payment {payment.id} (ref={payment.ref}) paid by transaction {reference_code}"
        )
        return CallbackResult(
            payment_id=payment.id,
            ref=payment.ref,
            txn_id=payment.txn_id,
        )

    async def handle_webhook(
        self,
        webhook: SePayWebhook,
        metadata: Optional[WebhookMetadata] = None,
    ) -> CallbackResult:
        """Audit a SePay webhook and reconcile it.

        The audit record is written before matching, whatever the outcome.
        Outgoing transfers are never matched.
        """
        self.audit_webhook(webhook, metadata)

        if not webhook.is_incoming:
            logger.info(f"Ignoring outgoing transfer {webhook.referenceCode}")
            raise NoMatchingPayment()

        return await self.process_callback(
            webhook_content=webhook.content,
            transfer_amount=webhook.transferAmount,
            reference_code=webhook.referenceCode,
        )

    def audit_webhook(
        self,
        webhook: SePayWebhook,
        metadata: Optional[WebhookMetadata] = None,
    ) -> None:
        metadata = metadata or WebhookMetadata()
        record = {
            "event": "sepay_webhook",
            "ip": metadata.ip,
            "origin": metadata.origin,
            "referer": metadata.referer,
            "userAgent": metadata.user_agent,
            "body": metadata.body or webhook.model_dump(mode="json"),
        }
        audit_logger.info(
            json.dumps(record, default=str, ensure_ascii=False),
            extra={"webhook": record},
        )

    async def search_payments(self, filters: Optional[SearchFilters] = None) -> SearchResult:
        """List payments matching every supplied filter, oldest first.

        Args:
            filters: Search filters. None or an empty filter set returns all
                payments.

        Returns:
            SearchResult with mapped records and their count.

        Raises:
            PersistenceError: On database failure.
        """
        filters = filters or SearchFilters()
        try:
            payments = await self.payment_repo.search(
                ref=filters.ref,
                content=filters.content,
                status=filters.paid,
                created_from=filters.created_from,
                created_to=filters.created_to,
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error while searching payments: {e}")
            raise PersistenceError() from e

        data = [p.to_dict() for p in payments]
        return SearchResult(data=data, count=len(data))
