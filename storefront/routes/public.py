"""
Customer-facing storefront endpoints.

    - GET  /api/products: Menu of the current tenant
    - GET  /api/promotions: Promotions active right now
    - GET  /api/settings/schedule: Effective pickup schedule
    - GET  /api/slots: Pickup slots for a date
    - POST /api/orders: Place a pickup order
    - GET  /api/orders/{order_id}: Order status
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings, get_settings
from storefront.database import get_db
from storefront.dependencies import (
    get_business_or_none,
    require_business,
    slot_config_for,
)
from storefront.models import (
    Business,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    Promotion,
)
from storefront.schemas import (
    ErrorResponse,
    MenuCategory,
    MenuResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    ProductResponse,
    PromotionResponse,
    ScheduleResponse,
    SlotsResponse,
)
from storefront.services.payment import BasePaymentService, get_payment_service
from storefront.services.promotions import CartLine, PromotionRule, apply_best_promotion
from storefront.services.scheduling import (
    ScheduleError,
    effective_schedule,
    is_valid_slot,
    local_pickup_to_utc,
    parse_date_iso,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Storefront"])


async def _active_promotions(db: AsyncSession, business: Business, now: datetime) -> list[Promotion]:
    result = await db.execute(
        select(Promotion).where(
            Promotion.business_id == business.id,
            Promotion.active.is_(True),
        )
    )
    return [p for p in result.scalars().all() if PromotionRule.from_model(p).is_active(now)]


# =============================================================================
# MENU & PROMOTIONS
# =============================================================================

@router.get("/products", response_model=MenuResponse)
async def list_menu(
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> MenuResponse:
    """Available products grouped by category."""
    result = await db.execute(
        select(Product)
        .where(Product.business_id == business.id, Product.available.is_(True))
        .order_by(Product.sort_order, Product.name)
    )
    products = result.scalars().all()

    groups: dict[Optional[int], MenuCategory] = {}
    order: list[tuple[int, str, Optional[int]]] = []
    for product in products:
        key = product.category_id
        if key not in groups:
            name = product.category.name if product.category else "Otros"
            sort = product.category.sort_order if product.category else 1_000_000
            groups[key] = MenuCategory(id=key, name=name, products=[])
            order.append((sort, name, key))
        groups[key].products.append(ProductResponse.model_validate(product))

    return MenuResponse(categories=[groups[key] for _, _, key in sorted(order, key=lambda o: (o[0], o[1]))])


@router.get("/promotions", response_model=list[PromotionResponse])
async def list_active_promotions(
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[PromotionResponse]:
    """Promotions that apply right now in the business's timezone."""
    now = datetime.now(slot_config_for(business, settings).tz)
    return [PromotionResponse.model_validate(p) for p in await _active_promotions(db, business, now)]


# =============================================================================
# SCHEDULE & SLOTS
# =============================================================================

@router.get("/settings/schedule", response_model=ScheduleResponse)
async def get_schedule(
    business: Optional[Business] = Depends(get_business_or_none),
) -> ScheduleResponse:
    """Effective schedule, or null when no tenant is resolved."""
    if business is None:
        return ScheduleResponse(data=None)
    try:
        schedule = effective_schedule(business.ordering_hours, business.opening_hours)
    except ScheduleError as e:
        logger.error(f"Business '{business.slug}' has an invalid schedule: {e}")
        raise HTTPException(status_code=500, detail="Business schedule is misconfigured")
    return ScheduleResponse(data=schedule.to_dict())


@router.get("/slots", response_model=SlotsResponse, responses={400: {"model": ErrorResponse}})
async def list_slots(
    date: Optional[str] = Query(None, description="Pickup date, YYYY-MM-DD (default: today)"),
    business: Business = Depends(require_business),
    settings: Settings = Depends(get_settings),
) -> SlotsResponse:
    """Pickup times available on a date for the current tenant."""
    config = slot_config_for(business, settings)
    now = datetime.now(config.tz)

    target_date = now.date() if date is None else parse_date_iso(date)
    if target_date is None:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")

    return SlotsResponse(
        date=target_date.isoformat(),
        timezone=str(config.tz),
        slots=config.slots_for(target_date, now=now),
    )


# =============================================================================
# ORDERS
# =============================================================================

@router.post(
    "/orders",
    response_model=OrderCreateResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def create_order(
    order_data: OrderCreate,
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> OrderCreateResponse:
    """
    Place a pickup order.

    The pickup time is checked against the freshly computed slot set and
    prices come from the database, never from the client.
    """
    method = order_data.payment_method
    if method == PaymentMethod.CARD and not business.card_payments_enabled:
        raise HTTPException(status_code=400, detail="Card payments are not enabled")
    if method == PaymentMethod.CASH and not business.cash_payments_enabled:
        raise HTTPException(status_code=400, detail="Cash payments are not enabled")

    config = slot_config_for(business, settings)
    now = datetime.now(config.tz)
    pickup_day = parse_date_iso(order_data.pickup_date)
    if pickup_day is None or pickup_day < now.date():
        raise HTTPException(status_code=400, detail="Pickup date is in the past")
    if not is_valid_slot(order_data.pickup_date, order_data.pickup_time, config, now=now):
        logger.info(
            f"Rejected pickup {order_data.pickup_date} {order_data.pickup_time} "
            f"for '{business.slug}'"
        )
        raise HTTPException(status_code=400, detail="Pickup time is not available")

    # Re-price from the catalogue
    product_ids = {item.product_id for item in order_data.items}
    result = await db.execute(
        select(Product).where(
            Product.business_id == business.id,
            Product.id.in_(product_ids),
            Product.available.is_(True),
        )
    )
    products = {p.id: p for p in result.scalars().all()}
    missing = sorted(product_ids - products.keys())
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown products: {missing}")

    lines = [
        CartLine(
            product_id=item.product_id,
            unit_price_cents=products[item.product_id].price_cents,
            quantity=item.quantity,
            category_id=products[item.product_id].category_id,
        )
        for item in order_data.items
    ]
    rules = [PromotionRule.from_model(p) for p in await _active_promotions(db, business, now)]
    pricing = apply_best_promotion(lines, rules, now=now)

    order_id = str(uuid.uuid4())
    order = Order(
        id=order_id,
        business_id=business.id,
        code=order_id.split("-")[0],
        customer_name=order_data.customer.name,
        customer_phone=order_data.customer.phone,
        customer_email=order_data.customer.email,
        notes=order_data.notes,
        pickup_at=local_pickup_to_utc(order_data.pickup_date, order_data.pickup_time, config.tz),
        subtotal_cents=pricing.subtotal_cents,
        discount_cents=pricing.discount_cents,
        total_cents=pricing.total_cents,
        promotion_id=pricing.promotion.id if pricing.promotion else None,
        payment_method=method,
        payment_status=PaymentStatus.UNPAID,
        status=OrderStatus.PENDING,
        items=[
            OrderItem(
                product_id=line.product_id,
                name=products[line.product_id].name,
                unit_price_cents=line.unit_price_cents,
                quantity=line.quantity,
                line_total_cents=line.total_cents,
            )
            for line in lines
        ],
    )

    client_secret = None
    if method == PaymentMethod.CARD:
        payment = await payment_service.create_payment_intent(
            amount_cents=order.total_cents,
            metadata={"order_id": order_id, "business_id": business.id},
            description=f"{business.name} order {order.code}",
            receipt_email=order.customer_email,
        )
        if not payment.success:
            status = 400 if payment.error_code == "invalid_amount" else 502
            raise HTTPException(status_code=status, detail=payment.error_message or "Payment failed")
        order.payment_intent_id = payment.payment_intent_id
        client_secret = payment.client_secret

    db.add(order)
    await db.commit()

    logger.info(
        f"Order {order.code} created for '{business.slug}' "
        f"({order.total_cents} cents, {method.value})"
    )

    return OrderCreateResponse(
        order_id=order.id,
        code=order.code,
        subtotal_cents=order.subtotal_cents,
        discount_cents=order.discount_cents,
        total_cents=order.total_cents,
        promotion_id=order.promotion_id,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        client_secret=client_secret,
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Order status for the customer who placed it."""
    result = await db.execute(
        select(Order).where(Order.id == order_id, Order.business_id == business.id)
    )
    order = result.scalar_one_or_none()

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return OrderResponse.model_validate(order)
