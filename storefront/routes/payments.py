"""
Payment provider webhook.

    - POST /api/stripe/webhook: PaymentIntent outcome reconciliation
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db
from storefront.models import Order, OrderStatus, PaymentStatus
from storefront.services.payment import BasePaymentService, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Payments"])

HANDLED_EVENTS = ("payment_intent.succeeded", "payment_intent.payment_failed")


async def _order_for_intent(db: AsyncSession, intent: dict) -> Optional[Order]:
    result = await db.execute(select(Order).where(Order.payment_intent_id == intent.get("id")))
    order = result.scalar_one_or_none()
    if order is None:
        order_id = (intent.get("metadata") or {}).get("order_id")
        if order_id:
            order = await db.get(Order, order_id)
    return order


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> dict:
    """
    Mark card orders paid or failed from PaymentIntent events.

    Unverifiable payloads get 400 so the provider retries. Unrelated event
    types and unknown intents are acknowledged and ignored.
    """
    payload = await request.body()
    event = await payment_service.verify_webhook(payload, stripe_signature)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid webhook")

    event_type = event.get("type")
    if event_type not in HANDLED_EVENTS:
        logger.debug(f"Ignoring webhook event {event_type}")
        return {"received": True}

    intent = (event.get("data") or {}).get("object") or {}
    order = await _order_for_intent(db, intent)
    if order is None:
        logger.warning(f"Webhook {event_type} for unknown intent {intent.get('id')}")
        return {"received": True}

    if event_type == "payment_intent.succeeded":
        order.payment_status = PaymentStatus.PAID
        order.paid_at = datetime.now(timezone.utc)
        if order.status == OrderStatus.PENDING:
            order.status = OrderStatus.CONFIRMED
    elif order.payment_status != PaymentStatus.PAID:
        order.payment_status = PaymentStatus.FAILED

    await db.commit()
    logger.info(f"Order {order.code}: {event_type} -> {order.payment_status.value}")

    return {"received": True}
