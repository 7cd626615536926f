"""
Admin endpoints for business members and super-admins.

Every route depends on require_admin_access; the ones that touch tenant
data also need a concrete Business.

    - GET    /api/admin/access
    - GET    /api/admin/categories, POST, PATCH/DELETE /{category_id}
    - GET    /api/admin/products, POST, PATCH/DELETE /{product_id}
    - GET    /api/admin/promotions, POST, PATCH/DELETE /{promotion_id}
    - GET    /api/admin/orders, POST /api/admin/orders/status
    - GET    /api/admin/settings/payments, PUT
    - PUT    /api/admin/settings/schedule
    - GET    /api/admin/members, POST, DELETE /{user_id}
    - GET    /api/admin/member-access-logs
"""

import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db
from storefront.dependencies import AdminContext, require_admin_access, require_admin_business
from storefront.models import (
    Business,
    BusinessMember,
    Category,
    MemberAccessLog,
    MemberRole,
    Order,
    OrderStatus,
    Product,
    Promotion,
)
from storefront.schemas import (
    AccessLogResponse,
    AccessResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MemberResponse,
    MemberUpsert,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentSettings,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    PromotionCreate,
    PromotionResponse,
    PromotionUpdate,
    ScheduleResponse,
    ScheduleUpdate,
)
from storefront.services.scheduling import ScheduleError, WeeklySchedule, effective_schedule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

ACCESS_LOG_LIMIT = 50


@router.get("/access", response_model=AccessResponse)
async def check_access(admin: AdminContext = Depends(require_admin_access)) -> AccessResponse:
    """Who the caller is to the current tenant."""
    decision = admin.decision
    return AccessResponse(
        tenant=admin.tenant_slug,
        allowed=decision.allowed,
        is_super_admin=decision.is_super_admin,
        business_id=decision.business_id,
        role=decision.role,
    )


# =============================================================================
# CATEGORIES
# =============================================================================

async def _get_category(
    db: AsyncSession, business: Business, category_id: int, status_code: int = 404
) -> Category:
    result = await db.execute(
        select(Category).where(Category.id == category_id, Category.business_id == business.id)
    )
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=status_code, detail=f"Category #{category_id} not found")
    return category


async def _ensure_unique_category_name(
    db: AsyncSession, business: Business, name: str, exclude_id: Optional[int] = None
) -> None:
    query = select(Category.id).where(Category.business_id == business.id, Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(status_code=409, detail=f"Category '{name}' already exists")


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    result = await db.execute(
        select(Category)
        .where(Category.business_id == business.id)
        .order_by(Category.sort_order, Category.name)
    )
    return [CategoryResponse.model_validate(c) for c in result.scalars().all()]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    await _ensure_unique_category_name(db, business, data.name)

    category = Category(business_id=business.id, **data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info(f"Category #{category.id} '{category.name}' created for '{business.slug}'")
    return CategoryResponse.model_validate(category)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = await _get_category(db, business, category_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        await _ensure_unique_category_name(db, business, changes["name"], exclude_id=category.id)

    for field, value in changes.items():
        setattr(category, field, value)
    await db.commit()
    await db.refresh(category)
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete a category; its products move to the uncategorised group."""
    category = await _get_category(db, business, category_id)
    await db.execute(
        update(Product)
        .where(Product.business_id == business.id, Product.category_id == category.id)
        .values(category_id=None)
    )
    await db.delete(category)
    await db.commit()
    logger.info(f"Category #{category_id} deleted for '{business.slug}'")
    return {"ok": True}


# =============================================================================
# PRODUCTS
# =============================================================================

async def _get_product(db: AsyncSession, business: Business, product_id: int) -> Product:
    result = await db.execute(
        select(Product).where(Product.id == product_id, Product.business_id == business.id)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail=f"Product #{product_id} not found")
    return product


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> list[ProductResponse]:
    result = await db.execute(
        select(Product)
        .where(Product.business_id == business.id)
        .order_by(Product.sort_order, Product.name)
    )
    return [ProductResponse.model_validate(p) for p in result.scalars().all()]


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    if data.category_id is not None:
        await _get_category(db, business, data.category_id, status_code=400)
    product = Product(business_id=business.id, **data.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info(f"Product #{product.id} '{product.name}' created for '{business.slug}'")
    return ProductResponse.model_validate(product)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await _get_product(db, business, product_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        await _get_category(db, business, changes["category_id"], status_code=400)
    for field, value in changes.items():
        setattr(product, field, value)
    await db.commit()
    await db.refresh(product)
    return ProductResponse.model_validate(product)


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: int,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> dict:
    product = await _get_product(db, business, product_id)
    await db.delete(product)
    await db.commit()
    logger.info(f"Product #{product_id} deleted from '{business.slug}'")
    return {"ok": True}


# =============================================================================
# PROMOTIONS
# =============================================================================

async def _get_promotion(db: AsyncSession, business: Business, promotion_id: str) -> Promotion:
    result = await db.execute(
        select(Promotion).where(Promotion.id == promotion_id, Promotion.business_id == business.id)
    )
    promotion = result.scalar_one_or_none()
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


@router.get("/promotions", response_model=list[PromotionResponse])
async def list_promotions(
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> list[PromotionResponse]:
    result = await db.execute(
        select(Promotion)
        .where(Promotion.business_id == business.id)
        .order_by(Promotion.created_at.desc())
    )
    return [PromotionResponse.model_validate(p) for p in result.scalars().all()]


@router.post("/promotions", response_model=PromotionResponse, status_code=201)
async def create_promotion(
    data: PromotionCreate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> PromotionResponse:
    promotion = Promotion(business_id=business.id, **data.model_dump())
    db.add(promotion)
    await db.commit()
    await db.refresh(promotion)
    logger.info(f"Promotion '{promotion.name}' created for '{business.slug}'")
    return PromotionResponse.model_validate(promotion)


@router.patch("/promotions/{promotion_id}", response_model=PromotionResponse)
async def update_promotion(
    promotion_id: str,
    data: PromotionUpdate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> PromotionResponse:
    promotion = await _get_promotion(db, business, promotion_id)
    merged = PromotionResponse.model_validate(promotion).model_dump()
    merged.update(data.model_dump(exclude_unset=True))

    try:
        checked = PromotionCreate.model_validate(merged)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    for field in data.model_fields_set:
        setattr(promotion, field, getattr(checked, field))
    await db.commit()
    await db.refresh(promotion)
    return PromotionResponse.model_validate(promotion)


@router.delete("/promotions/{promotion_id}")
async def delete_promotion(
    promotion_id: str,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> dict:
    promotion = await _get_promotion(db, business, promotion_id)
    await db.delete(promotion)
    await db.commit()
    return {"ok": True}


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[str] = Query(None),
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Paginated orders of the tenant, newest first."""
    query = select(Order).where(Order.business_id == business.id).order_by(Order.created_at.desc())
    count_query = select(func.count(Order.id)).where(Order.business_id == business.id)

    if status:
        try:
            status_enum = OrderStatus(status.lower())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}",
            )
        query = query.where(Order.status == status_enum)
        count_query = count_query.where(Order.status == status_enum)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(query.offset(skip).limit(limit))

    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in result.scalars().all()],
    )


@router.post("/orders/status", response_model=OrderResponse)
async def update_order_status(
    data: OrderStatusUpdate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    result = await db.execute(
        select(Order).where(Order.id == data.id, Order.business_id == business.id)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    previous = order.status
    order.status = data.status
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order {order.code}: {previous.value} -> {order.status.value}")
    return OrderResponse.model_validate(order)


# =============================================================================
# SETTINGS
# =============================================================================

@router.get("/settings/payments", response_model=PaymentSettings)
async def get_payment_settings(
    business: Business = Depends(require_admin_business),
) -> PaymentSettings:
    return PaymentSettings(
        card_enabled=business.card_payments_enabled,
        cash_enabled=business.cash_payments_enabled,
    )


@router.put("/settings/payments", response_model=PaymentSettings)
async def update_payment_settings(
    data: PaymentSettings,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> PaymentSettings:
    business.card_payments_enabled = data.card_enabled
    business.cash_payments_enabled = data.cash_enabled
    await db.commit()
    logger.info(
        f"Payment settings for '{business.slug}': "
        f"card={data.card_enabled} cash={data.cash_enabled}"
    )
    return data


@router.put("/settings/schedule", response_model=ScheduleResponse)
async def update_schedule(
    data: ScheduleUpdate,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> ScheduleResponse:
    """
    Replace the tenant's schedules.

    Hours are normalized before storage; malformed input is a 400.
    """
    fields = data.model_fields_set
    try:
        if "ordering_hours" in fields:
            business.ordering_hours = _normalized(data.ordering_hours)
        if "opening_hours" in fields:
            business.opening_hours = _normalized(data.opening_hours)
    except ScheduleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if "timezone" in fields:
        if data.timezone:
            try:
                ZoneInfo(data.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise HTTPException(status_code=400, detail=f"Unknown timezone: {data.timezone}")
        business.timezone = data.timezone or None

    await db.commit()
    logger.info(f"Schedule updated for '{business.slug}'")

    schedule = effective_schedule(business.ordering_hours, business.opening_hours)
    return ScheduleResponse(data=schedule.to_dict())


def _normalized(raw: Optional[dict]) -> Optional[dict]:
    if raw is None:
        return None
    return WeeklySchedule.from_mapping(raw).to_dict()


# =============================================================================
# MEMBERS
# =============================================================================

@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> list[MemberResponse]:
    result = await db.execute(
        select(BusinessMember)
        .where(BusinessMember.business_id == business.id)
        .order_by(BusinessMember.created_at)
    )
    return [MemberResponse.model_validate(m) for m in result.scalars().all()]


@router.post("/members", response_model=MemberResponse)
async def upsert_member(
    data: MemberUpsert,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> MemberResponse:
    """Add a member or change an existing member's email and role."""
    member = await db.get(BusinessMember, (business.id, data.user_id))
    email = data.email.strip().lower() if data.email else None

    if member is None:
        member = BusinessMember(
            business_id=business.id,
            user_id=data.user_id,
            email=email,
            role=MemberRole(data.role),
        )
        db.add(member)
        logger.info(f"Member {data.user_id} added to '{business.slug}' as {data.role}")
    else:
        member.role = MemberRole(data.role)
        if email:
            member.email = email

    await db.commit()
    await db.refresh(member)
    return MemberResponse.model_validate(member)


@router.delete("/members/{user_id}")
async def delete_member(
    user_id: str,
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await db.execute(
        delete(BusinessMember).where(
            BusinessMember.business_id == business.id,
            BusinessMember.user_id == user_id,
        )
    )
    await db.commit()
    if not result.rowcount:
        raise HTTPException(status_code=404, detail="Member not found")
    logger.info(f"Member {user_id} removed from '{business.slug}'")
    return {"ok": True}


@router.get("/member-access-logs", response_model=list[AccessLogResponse])
async def list_member_access_logs(
    business: Business = Depends(require_admin_business),
    db: AsyncSession = Depends(get_db),
) -> list[AccessLogResponse]:
    """Latest admin accesses by members of this business."""
    result = await db.execute(
        select(MemberAccessLog, BusinessMember.email)
        .outerjoin(
            BusinessMember,
            (BusinessMember.business_id == MemberAccessLog.business_id)
            & (BusinessMember.user_id == MemberAccessLog.user_id),
        )
        .where(MemberAccessLog.business_id == business.id)
        .order_by(MemberAccessLog.accessed_at.desc())
        .limit(ACCESS_LOG_LIMIT)
    )
    return [
        AccessLogResponse(user_id=log.user_id, email=email, accessed_at=log.accessed_at)
        for log, email in result.all()
    ]
