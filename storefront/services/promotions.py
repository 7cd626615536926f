"""
Promotion selection.

At most one promotion applies to an order: the active one that yields the
largest discount. All amounts are integer cents.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

ALL_ISO_WEEKDAYS = (1, 2, 3, 4, 5, 6, 7)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    unit_price_cents: int
    quantity: int
    category_id: Optional[int] = None

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class PromotionRule:
    """
    Attributes:
        id: Promotion identifier
        type: "percent" or "fixed"
        value: Percentage (0-100) or fixed amount in cents
        scope: "order", "category" or "product"
        weekdays: ISO weekdays (1=Mon..7=Sun); empty means every day
    """
    id: str
    name: str
    type: str
    value: float
    scope: str = "order"
    target_category_id: Optional[int] = None
    target_product_id: Optional[int] = None
    min_amount_cents: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    weekdays: Sequence[int] = field(default_factory=tuple)
    active: bool = True

    @classmethod
    def from_model(cls, promo) -> "PromotionRule":
        return cls(
            id=promo.id,
            name=promo.name,
            type=promo.type,
            value=promo.value,
            scope=promo.scope,
            target_category_id=promo.target_category_id,
            target_product_id=promo.target_product_id,
            min_amount_cents=promo.min_amount_cents,
            start_date=promo.start_date,
            end_date=promo.end_date,
            weekdays=tuple(promo.weekdays or ()),
            active=promo.active,
        )

    def is_active(self, reference: datetime) -> bool:
        if not self.active:
            return False
        today = reference.date()
        if self.start_date and today < self.start_date:
            return False
        if self.end_date and today > self.end_date:
            return False
        weekdays = self.weekdays or ALL_ISO_WEEKDAYS
        return reference.isoweekday() in weekdays

    def eligible_amount(self, lines: Sequence[CartLine]) -> int:
        if self.scope == "category":
            if self.target_category_id is None:
                return 0
            return sum(l.total_cents for l in lines if l.category_id == self.target_category_id)
        if self.scope == "product":
            if self.target_product_id is None:
                return 0
            return sum(l.total_cents for l in lines if l.product_id == self.target_product_id)
        return sum(l.total_cents for l in lines)

    def discount_for(self, amount: int) -> int:
        if amount <= 0 or self.value <= 0:
            return 0
        if self.type == "percent":
            pct = min(max(self.value, 0), 100)
            return int(round(amount * pct / 100))
        return int(min(round(self.value), amount))


@dataclass(frozen=True)
class PromotionResult:
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    promotion: Optional[PromotionRule] = None


def apply_best_promotion(
    lines: Sequence[CartLine],
    promotions: Iterable[PromotionRule],
    now: Optional[datetime] = None,
) -> PromotionResult:
    """Pick the active promotion with the largest discount for the cart."""
    subtotal = sum(l.total_cents for l in lines)
    reference = now or datetime.now()

    best_discount = 0
    best: Optional[PromotionRule] = None
    if subtotal > 0:
        for promo in promotions:
            if not promo.is_active(reference):
                continue
            eligible = promo.eligible_amount(lines)
            if eligible <= 0:
                continue
            if subtotal < max(0, promo.min_amount_cents or 0):
                continue
            discount = promo.discount_for(eligible)
            if discount > best_discount:
                best_discount = discount
                best = promo

    return PromotionResult(
        subtotal_cents=subtotal,
        discount_cents=best_discount,
        total_cents=max(0, subtotal - best_discount),
        promotion=best,
    )
