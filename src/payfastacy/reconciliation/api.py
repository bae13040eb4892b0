"""API endpoints for payment initialization, webhooks and search."""

import logging
from datetime import date
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import client_ip, verify_api_key
from ..errors import PaymentError
from .gateway import SePayClient
from .models import (
    CreatePaymentRequest,
    PaymentStatusFilter,
    SearchFilters,
    SePayWebhook,
    WebhookMetadata,
)
from .service import ReconciliationEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payment"])


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency yielding one database session per request."""
    async with request.app.state.db.session() as session:
        yield session


def get_engine(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ReconciliationEngine:
    return ReconciliationEngine(session, settings=request.app.state.settings)


def get_gateway(request: Request) -> SePayClient:
    return request.app.state.gateway


def get_search_filters(
    ref: Optional[str] = Query(default=None, description="Reference code"),
    content: Optional[str] = Query(default=None, description="Payment content"),
    status: Optional[PaymentStatusFilter] = Query(default=None, description="Payment status"),
    date_from: Optional[date] = Query(default=None, alias="from", description="Start date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(default=None, alias="to", description="End date (YYYY-MM-DD)"),
) -> SearchFilters:
    try:
        return SearchFilters(
            ref=ref,
            content=content,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[err["msg"] for err in e.errors()],
        )


def webhook_metadata(request: Request, webhook: SePayWebhook) -> WebhookMetadata:
    return WebhookMetadata(
        ip=client_ip(request),
        origin=request.headers.get("origin"),
        referer=request.headers.get("referer"),
        user_agent=request.headers.get("user-agent"),
        body=webhook.model_dump(mode="json", exclude_unset=True),
    )


@router.post("/init")
async def init_payment(
    body: CreatePaymentRequest,
    engine: ReconciliationEngine = Depends(get_engine),
    api_key: str = Depends(verify_api_key),
):
    """
    Initialize a new payment request.

    Returns the content token the payer must put in the transfer memo.
    """
    created = await engine.create_payment(amount=body.amount, ref=body.ref)
    return {"success": True, "data": created.model_dump()}


async def sepay_callback(
    request: Request,
    webhook: SePayWebhook = Body(...),
    engine: ReconciliationEngine = Depends(get_engine),
):
    """
    Webhook callback from the SePay payment gateway.

    Not protected by the API key: SePay cannot send it. Registered by the
    app factory so each application applies its own rate limit.
    """
    try:
        result = await engine.handle_webhook(webhook, webhook_metadata(request, webhook))
    except PaymentError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message},
        )
    return {"success": True, "message": result.message}


@router.get("/search")
async def search_payments(
    filters: SearchFilters = Depends(get_search_filters),
    engine: ReconciliationEngine = Depends(get_engine),
    api_key: str = Depends(verify_api_key),
):
    """Search payments with filters, oldest first."""
    result = await engine.search_payments(filters)
    return {"success": True, "data": result.data, "count": result.count}


@router.get("/txn/{txn_id}", tags=["transaction"])
async def get_transaction(
    txn_id: str,
    gateway: SePayClient = Depends(get_gateway),
    api_key: str = Depends(verify_api_key),
):
    """Get transaction details from SePay."""
    transaction = await gateway.fetch_transaction(txn_id)
    return {"success": True, "data": transaction}


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "payfastacy"}
