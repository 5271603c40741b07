"""Subscription upgrade detection with estimated annual savings"""

from decimal import Decimal
from typing import Iterable, List, Optional

from checkout_messaging.domain.models import CartLine, SubscriptionPlan, UpsellOpportunity
from checkout_messaging.utils.money import round_half_up

UPGRADE_FREQUENCY = "annual"

DELIVERIES_PER_YEAR = {
    "monthly": 12,
    "bimonthly": 6,
    "quarterly": 4,
    "biannual": 2,
    "annual": 1,
}

# Estimated annual-commitment discount by current frequency (heuristic, not a quote)
ANNUAL_DISCOUNT_RATES = {
    "monthly": Decimal("0.18"),
    "bimonthly": Decimal("0.15"),
    "quarterly": Decimal("0.12"),
}

UPSELL_ELIGIBLE = frozenset(ANNUAL_DISCOUNT_RATES)

_MONTH_COUNTS = {1: "monthly", 2: "bimonthly", 3: "quarterly", 6: "biannual", 12: "annual"}

# Order matters: "biannual" contains "annual", "bimonthly" contains "month"
_NAME_KEYWORDS = (
    (("biannual", "bi-annual", "semi-annual", "semiannual", "6 month", "6-month"), "biannual"),
    (("annual", "yearly", "12 month", "12-month"), "annual"),
    (("quarter", "3 month", "3-month"), "quarterly"),
    (("bimonth", "bi-month", "2 month", "2-month"), "bimonthly"),
    (("month",), "monthly"),
)


def extract_frequency(plan: Optional[SubscriptionPlan]) -> Optional[str]:
    """Infer delivery frequency from the plan's delivery policy, then its name"""
    if plan is None:
        return None

    policy = plan.delivery_policy
    if policy is not None and policy.interval:
        interval = policy.interval.strip().lower()
        count = policy.interval_count or 1
        if interval == "month":
            return _MONTH_COUNTS.get(count)
        if interval == "year" and count == 1:
            return "annual"
        if interval == "week" and count in (4, 5):
            return "monthly"
        return None

    name = (plan.name or "").lower()
    for keywords, frequency in _NAME_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return frequency
    return None


def deliveries_per_year(frequency: str) -> int:
    return DELIVERIES_PER_YEAR.get(frequency, 0)


def detect_upsell(line: CartLine) -> Optional[UpsellOpportunity]:
    """
    Estimate the savings of switching a subscription line to annual delivery.

    Returns:
        UpsellOpportunity, or None when the line has no plan, is not eligible,
        has no positive price, or the estimated savings are not positive
    """
    if not isinstance(line, CartLine) or line.subscription_plan is None:
        return None

    frequency = extract_frequency(line.subscription_plan)
    if frequency not in UPSELL_ELIGIBLE:
        return None

    price = line.unit_price.amount_minor if line.unit_price else 0
    if price <= 0:
        return None

    quantity = max(1, line.quantity or 1)
    annual_cost = price * deliveries_per_year(frequency) * quantity
    estimated_cost = round_half_up(Decimal(annual_cost) * (1 - ANNUAL_DISCOUNT_RATES[frequency]))
    savings = annual_cost - estimated_cost
    if savings <= 0:
        return None

    return UpsellOpportunity(
        current_frequency=frequency,
        upgrade_frequency=UPGRADE_FREQUENCY,
        savings_amount_minor_units=savings,
        savings_percentage=round_half_up(Decimal(100 * savings) / Decimal(annual_cost)),
        current_price_minor_units=price,
        upgrade_price_minor_units=round_half_up(Decimal(estimated_cost) / Decimal(quantity)),
        product_title=(line.product.title if line.product else "") or line.title,
        quantity=quantity,
        annual_cost_minor_units=annual_cost,
    )


def detect_all_upsells(lines: Iterable[CartLine]) -> List[UpsellOpportunity]:
    """All upsell opportunities in cart order"""
    opportunities = []
    for line in lines:
        opportunity = detect_upsell(line)
        if opportunity is not None:
            opportunities.append(opportunity)
    return opportunities


def best_upsell(opportunities: Iterable[UpsellOpportunity]) -> Optional[UpsellOpportunity]:
    """Highest-savings opportunity; the earliest line wins a tie"""
    best = None
    for opportunity in opportunities:
        if best is None or opportunity.savings_amount_minor_units > best.savings_amount_minor_units:
            best = opportunity
    return best
