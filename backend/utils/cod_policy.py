from datetime import datetime
from typing import Iterable, Optional, Sequence

from config.constants import (
    PRICING_FIXED,
    PRICING_TIERED,
    STRATEGY_ZONE,
    STRATEGY_COURIER,
    COD_DISABLED,
    BELOW_MIN_ORDER_VALUE,
    ABOVE_MAX_ORDER_VALUE,
    CATEGORY_EXCLUDED,
    PRODUCT_EXCLUDED,
    PINCODE_EXCLUDED,
    STATE_EXCLUDED,
    OUTSIDE_ALLOWED_DAYS,
    OUTSIDE_ALLOWED_HOURS,
    NO_MATCHING_TIER,
)
from models.cod import (
    CartLine,
    CodDecision,
    CodSettings,
    Courier,
    DeliveryAddress,
    PricingTier,
    TimeRestrictions,
    Zone,
)


# ======================================================
# MATH HELPERS
# ======================================================

def clamp(value: float, min_charge: float, max_charge: Optional[float]) -> float:
    """
    Constrain a charge into [min_charge, max_charge].
    A missing or non-positive max_charge leaves the charge uncapped.
    """
    if max_charge is not None and max_charge > 0:
        value = min(value, max_charge)
    return max(value, min_charge)


def percentage_of(amount: float, percentage: float) -> float:
    return amount * percentage / 100


def order_subtotal(cart: Sequence[CartLine]) -> float:
    return round(sum(line.quantity * line.unit_price for line in cart), 2)


def _folded(values: Iterable[str]) -> set:
    return {v.strip().casefold() for v in values if v}


def _weekday(order_time: datetime) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (order_time.weekday() + 1) % 7


# ======================================================
# MATCHERS
# ======================================================

def match_zone(zones: Sequence[Zone], address: DeliveryAddress) -> Optional[Zone]:
    """First zone (in declaration order) covering the address."""
    state = address.state.casefold()
    city = address.city.casefold()

    for zone in zones:
        if address.pincode and address.pincode in {p.strip() for p in zone.pincodes}:
            return zone
        if state and state in _folded(zone.states):
            return zone
        if city and city in _folded(zone.cities):
            return zone
    return None


def match_tier(tiers: Sequence[PricingTier], subtotal: float) -> Optional[PricingTier]:
    """
    First tier in declaration order whose range holds the subtotal.
    A missing or non-positive maxAmount leaves the tier open-ended.
    Overlapping ranges resolve to whichever tier was entered first.
    """
    for tier in tiers:
        if tier.min_amount > subtotal:
            continue
        if tier.max_amount is not None and tier.max_amount > 0 and subtotal > tier.max_amount:
            continue
        return tier
    return None


def find_courier(couriers: Sequence[Courier], code: Optional[str]) -> Optional[Courier]:
    if not code:
        return None
    code = code.strip().casefold()
    return next(
        (c for c in couriers if c.enabled and c.code.strip().casefold() == code),
        None,
    )


def time_window_violation(restrictions: TimeRestrictions, order_time: datetime) -> Optional[str]:
    if not restrictions.enabled:
        return None

    if restrictions.days_of_week and _weekday(order_time) not in set(restrictions.days_of_week):
        return OUTSIDE_ALLOWED_DAYS

    current = order_time.strftime("%H:%M")
    if not (restrictions.start_time <= current <= restrictions.end_time):
        return OUTSIDE_ALLOWED_HOURS

    return None


def exclusion_violation(
    cart: Sequence[CartLine],
    address: DeliveryAddress,
    settings: CodSettings,
) -> Optional[str]:
    rules = settings.rules

    excluded_categories = set(rules.excluded_categories)
    if any(line.category_id in excluded_categories for line in cart if line.category_id):
        return CATEGORY_EXCLUDED

    excluded_products = set(rules.excluded_products)
    if any(line.product_id in excluded_products for line in cart if line.product_id):
        return PRODUCT_EXCLUDED

    if address.pincode and address.pincode in {p.strip() for p in rules.excluded_pincodes}:
        return PINCODE_EXCLUDED

    if address.state and address.state.casefold() in _folded(rules.excluded_states):
        return STATE_EXCLUDED

    return None


# ======================================================
# ENGINE
# ======================================================

def compute_charge(
    subtotal: float,
    address: DeliveryAddress,
    courier: Optional[str],
    settings: CodSettings,
) -> CodDecision:
    pricing = settings.pricing

    # ---- Location zone overrides every other strategy
    if pricing.location_based.enabled:
        zone = match_zone(pricing.location_based.zones, address)
        if zone:
            return CodDecision.allow(
                clamp(zone.charge, zone.min_charge, zone.max_charge),
                STRATEGY_ZONE,
            )

    # ---- Courier specific percentage
    if settings.courier_charges.enabled:
        entry = find_courier(settings.courier_charges.couriers, courier)
        if entry:
            return CodDecision.allow(
                clamp(percentage_of(subtotal, entry.percentage), entry.min_charge, entry.max_charge),
                STRATEGY_COURIER,
            )

    # ---- Default pricing.type
    if pricing.type == PRICING_FIXED:
        amount = pricing.fixed_amount if pricing.fixed_amount is not None else settings.charge
        return CodDecision.allow(amount, PRICING_FIXED)

    if pricing.type == PRICING_TIERED:
        tier = match_tier(pricing.tiers, subtotal)
        if not tier:
            return CodDecision.deny(NO_MATCHING_TIER)
        return CodDecision.allow(tier.charge, PRICING_TIERED)

    # percentage and dynamic share the same fields
    return CodDecision.allow(
        clamp(percentage_of(subtotal, pricing.percentage), pricing.min_charge, pricing.max_charge),
        pricing.type,
    )


def evaluate(
    cart: Sequence[CartLine],
    address: DeliveryAddress,
    courier: Optional[str],
    order_time: datetime,
    settings: CodSettings,
) -> CodDecision:
    """
    Decide COD availability and surcharge for one checkout attempt.

    Pure: reads only its arguments, never mutates `settings`, never raises
    for business outcomes. `order_time` must already be in store-local time.
    Checks run in a fixed order and the first failure wins.
    """

    # -------------------------------------------------
    # 1. Global kill switch
    # -------------------------------------------------
    if not settings.enabled:
        return CodDecision.deny(COD_DISABLED)

    # -------------------------------------------------
    # 2. Order value bounds (inclusive)
    # -------------------------------------------------
    subtotal = order_subtotal(cart)
    rules = settings.rules

    if subtotal < rules.min_order_value:
        return CodDecision.deny(BELOW_MIN_ORDER_VALUE)

    if rules.max_order_value > 0 and subtotal > rules.max_order_value:
        return CodDecision.deny(ABOVE_MAX_ORDER_VALUE)

    # -------------------------------------------------
    # 3. Exclusions
    # -------------------------------------------------
    excluded = exclusion_violation(cart, address, settings)
    if excluded:
        return CodDecision.deny(excluded)

    # -------------------------------------------------
    # 4. Time window
    # -------------------------------------------------
    outside = time_window_violation(rules.time_restrictions, order_time)
    if outside:
        return CodDecision.deny(outside)

    # -------------------------------------------------
    # 5. Charge
    # -------------------------------------------------
    return compute_charge(subtotal, address, courier, settings)
