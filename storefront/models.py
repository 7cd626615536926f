"""
SQLAlchemy Database Models

Every tenant-owned row carries ``business_id``; queries always filter on it.
Money is stored in integer cents.
"""

import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


class Business(Base):
    """A tenant: one storefront with its own menu, hours and orders."""
    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    address_line = Column(String(255), nullable=True)

    # Schedules stored as {"0": [{"start": "HH:MM", "end": "HH:MM"}], ...}
    opening_hours = Column(JSON, nullable=True)
    ordering_hours = Column(JSON, nullable=True)
    timezone = Column(String(64), nullable=True)

    # Payment settings
    card_payments_enabled = Column(Boolean, default=False, nullable=False)
    cash_payments_enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Business {self.slug}>"


class BusinessMember(Base):
    """Staff membership linking an auth-provider user to a business."""
    __tablename__ = "business_members"

    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True)
    role = Column(Enum(MemberRole), default=MemberRole.STAFF, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_access_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<BusinessMember {self.user_id}@{self.business_id} ({self.role.value})>"


class MemberAccessLog(Base):
    """One row per successful admin-panel access by a member."""
    __tablename__ = "business_member_access_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    accessed_at = Column(DateTime(timezone=True), nullable=False, index=True)


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("business_id", "name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False)
    image_url = Column(String(500), nullable=True)
    available = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", lazy="selectin")

    def __repr__(self):
        return f"<Product #{self.id} {self.name}>"


class Promotion(Base):
    """
    Automatic discount.

    ``value`` is a percentage for ``percent`` promotions and an amount in
    cents for ``fixed`` ones. ``weekdays`` holds ISO days (1=Mon..7=Sun).
    """
    __tablename__ = "promotions"

    id = Column(String(36), primary_key=True, default=_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(10), nullable=False)  # percent | fixed
    value = Column(Float, nullable=False)
    scope = Column(String(10), nullable=False, default="order")  # order | category | product
    target_category_id = Column(Integer, nullable=True)
    target_product_id = Column(Integer, nullable=True)
    min_amount_cents = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    weekdays = Column(JSON, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    """A customer pickup order."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(16), nullable=False, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    customer_email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PICKUP
    # =========================================================================
    pickup_at = Column(DateTime(timezone=True), nullable=False)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal_cents = Column(Integer, nullable=False)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False)
    promotion_id = Column(String(36), nullable=True)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.UNPAID)
    payment_intent_id = Column(String(100), nullable=True, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order {self.code} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=True)
    name = Column(String(150), nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    line_total_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
