from datetime import date, datetime

from storefront.services.promotions import CartLine, PromotionRule, apply_best_promotion

MONDAY_NOON = datetime(2025, 9, 22, 12, 0)

CART = [
    CartLine(product_id=1, unit_price_cents=1000, quantity=2, category_id=10),
    CartLine(product_id=2, unit_price_cents=350, quantity=1, category_id=20),
]


def rule(**fields) -> PromotionRule:
    fields.setdefault("id", "p1")
    fields.setdefault("name", "Promo")
    return PromotionRule(**fields)


def test_no_promotions():
    result = apply_best_promotion(CART, [], now=MONDAY_NOON)
    assert (result.subtotal_cents, result.discount_cents, result.total_cents) == (2350, 0, 2350)
    assert result.promotion is None


def test_best_discount_wins():
    percent = rule(id="pct", type="percent", value=10)
    fixed = rule(id="fix", type="fixed", value=300)

    result = apply_best_promotion(CART, [percent, fixed], now=MONDAY_NOON)

    assert result.promotion.id == "fix"
    assert result.discount_cents == 300
    assert result.total_cents == 2050


def test_category_scope_uses_eligible_amount():
    drinks = rule(type="percent", value=50, scope="category", target_category_id=20)
    result = apply_best_promotion(CART, [drinks], now=MONDAY_NOON)
    assert result.discount_cents == 175


def test_fixed_discount_capped_at_eligible_amount():
    product = rule(type="fixed", value=5000, scope="product", target_product_id=2)
    result = apply_best_promotion(CART, [product], now=MONDAY_NOON)
    assert result.discount_cents == 350


def test_minimum_amount():
    promo = rule(type="fixed", value=100, min_amount_cents=3000)
    assert apply_best_promotion(CART, [promo], now=MONDAY_NOON).promotion is None


def test_inactive_by_weekday_and_dates():
    weekend_only = rule(type="percent", value=20, weekdays=(6, 7))
    expired = rule(type="percent", value=20, end_date=date(2025, 9, 1))
    upcoming = rule(type="percent", value=20, start_date=date(2025, 10, 1))
    disabled = rule(type="percent", value=20, active=False)

    result = apply_best_promotion(CART, [weekend_only, expired, upcoming, disabled], now=MONDAY_NOON)
    assert result.promotion is None


def test_empty_cart():
    result = apply_best_promotion([], [rule(type="fixed", value=100)], now=MONDAY_NOON)
    assert result.total_cents == 0
    assert result.promotion is None
