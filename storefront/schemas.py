"""
Pydantic Schemas for Request/Response Validation

Money is exchanged in integer cents. Pickup dates and times are plain
local strings (``YYYY-MM-DD`` and ``HH:MM``) in the business's timezone.
"""

import re
from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from storefront.models import MemberRole, OrderStatus, PaymentMethod, PaymentStatus

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


# =============================================================================
# MENU
# =============================================================================

def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name cannot be blank")
    return v


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Pizzas"])
    sort_order: int = 0

    strip_name = field_validator("name")(_clean_name)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sort_order: Optional[int] = None

    strip_name = field_validator("name")(_clean_name)


class CategoryResponse(CategoryCreate):
    id: int

    class Config:
        from_attributes = True


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, examples=["Pizza Margherita"])
    description: Optional[str] = Field(None, max_length=2000)
    price_cents: int = Field(..., ge=0, examples=[1250])
    category_id: Optional[int] = None
    image_url: Optional[str] = Field(None, max_length=500)
    available: bool = True
    sort_order: int = 0


class ProductCreate(ProductBase):
    """Request schema for creating a product."""


class ProductUpdate(BaseModel):
    """Partial product update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    price_cents: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None
    image_url: Optional[str] = Field(None, max_length=500)
    available: Optional[bool] = None
    sort_order: Optional[int] = None


class ProductResponse(ProductBase):
    id: int

    class Config:
        from_attributes = True


class MenuCategory(BaseModel):
    id: Optional[int]
    name: str
    products: List[ProductResponse]


class MenuResponse(BaseModel):
    ok: bool = True
    categories: List[MenuCategory]


# =============================================================================
# PROMOTIONS
# =============================================================================

class PromotionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    type: Literal["percent", "fixed"]
    value: float = Field(..., gt=0)
    scope: Literal["order", "category", "product"] = "order"
    target_category_id: Optional[int] = None
    target_product_id: Optional[int] = None
    min_amount_cents: Optional[int] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    weekdays: Optional[List[int]] = None
    active: bool = True

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if any(d < 1 or d > 7 for d in v):
            raise ValueError("Weekdays must be ISO days 1 (Mon) to 7 (Sun)")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_promotion(self) -> "PromotionBase":
        if self.type == "percent" and self.value > 100:
            raise ValueError("Percent promotions cannot exceed 100")
        if self.scope == "category" and self.target_category_id is None:
            raise ValueError("Category promotions need target_category_id")
        if self.scope == "product" and self.target_product_id is None:
            raise ValueError("Product promotions need target_product_id")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self


class PromotionCreate(PromotionBase):
    """Request schema for creating a promotion."""


class PromotionUpdate(BaseModel):
    """Partial promotion update (active flag, dates, value)."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    value: Optional[float] = Field(None, gt=0)
    min_amount_cents: Optional[int] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    weekdays: Optional[List[int]] = None
    active: Optional[bool] = None


class PromotionResponse(PromotionBase):
    id: str

    class Config:
        from_attributes = True


# =============================================================================
# ORDERS
# =============================================================================

class CustomerIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Lucía García"])
    phone: str = Field(..., min_length=6, max_length=30, examples=["+34 600 123 456"])
    email: Optional[str] = Field(None, max_length=255, examples=["lucia@example.com"])

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = re.sub(r"[^\d]", "", v)
        if len(cleaned) < 6:
            raise ValueError("Phone number must have at least 6 digits")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", v.strip()):
            raise ValueError("Invalid email format")
        return v.strip().lower()


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1, le=99)


class OrderCreate(BaseModel):
    """Request schema for placing a pickup order."""
    customer: CustomerIn
    items: List[OrderItemIn] = Field(..., min_length=1)
    pickup_date: str = Field(..., examples=["2025-09-24"])
    pickup_time: str = Field(..., examples=["13:30"])
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("pickup_date")
    @classmethod
    def validate_pickup_date(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError("pickup_date must be YYYY-MM-DD")
        date.fromisoformat(v)
        return v

    @field_validator("pickup_time")
    @classmethod
    def validate_pickup_time(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("pickup_time must be HH:MM")
        return v


class OrderCreateResponse(BaseModel):
    ok: bool = True
    order_id: str
    code: str
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    promotion_id: Optional[str] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    client_secret: Optional[str] = None


class OrderItemResponse(BaseModel):
    product_id: Optional[int]
    name: str
    unit_price_cents: int
    quantity: int
    line_total_cents: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    code: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    notes: Optional[str]
    pickup_at: datetime
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    created_at: Optional[datetime]
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    total: int
    orders: List[OrderResponse]


class OrderStatusUpdate(BaseModel):
    id: str
    status: OrderStatus


# =============================================================================
# SLOTS & SETTINGS
# =============================================================================

class SlotsResponse(BaseModel):
    ok: bool = True
    date: str
    timezone: str
    slots: List[str]


class ScheduleResponse(BaseModel):
    ok: bool = True
    data: Optional[dict[str, Any]]


class ScheduleUpdate(BaseModel):
    ordering_hours: Optional[dict[str, Any]] = None
    opening_hours: Optional[dict[str, Any]] = None
    timezone: Optional[str] = None


class PaymentSettings(BaseModel):
    card_enabled: bool
    cash_enabled: bool

    @model_validator(mode="after")
    def require_one_method(self) -> "PaymentSettings":
        if not (self.card_enabled or self.cash_enabled):
            raise ValueError("At least one payment method must be enabled")
        return self


# =============================================================================
# MEMBERS & ACCESS
# =============================================================================

class MemberUpsert(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = Field(None, max_length=255)
    role: str = MemberRole.STAFF.value

    @field_validator("role", mode="before")
    @classmethod
    def sanitize_role(cls, v: Optional[str]) -> str:
        value = (v or "").strip().lower()
        return value if value in {r.value for r in MemberRole} else MemberRole.STAFF.value


class MemberResponse(BaseModel):
    user_id: str
    email: Optional[str]
    role: MemberRole
    created_at: Optional[datetime]
    last_access_at: Optional[datetime]

    class Config:
        from_attributes = True


class AccessLogResponse(BaseModel):
    user_id: str
    email: Optional[str]
    accessed_at: datetime


class AccessResponse(BaseModel):
    ok: bool = True
    tenant: str
    allowed: bool
    is_super_admin: bool
    business_id: Optional[str]
    role: Optional[str]


class WhoAmIResponse(BaseModel):
    ok: bool
    user_id: Optional[str] = None
    email: Optional[str] = None


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_service: str
    timestamp: datetime
