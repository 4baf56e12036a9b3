# backend/app/domain/pricing.py
from __future__ import annotations


def plan_total_price(
    *,
    base_price_per_month: float,
    is_discounted: bool = False,
    discount_percentage: float = 0.0,
    billed_yearly: bool = False,
    can_bill_yearly: bool = False,
    yearly_discount_percentage: float = 0.0,
) -> float:
    """
    Monthly price after the plan discount; for yearly billing, twelve months
    reduced by the yearly discount. Rounded to cents.
    """
    if billed_yearly and not can_bill_yearly:
        raise ValueError("Plan cannot be billed yearly")

    monthly = float(base_price_per_month)
    if is_discounted:
        monthly *= 1.0 - float(discount_percentage) / 100.0

    if billed_yearly:
        total = monthly * 12 * (1.0 - float(yearly_discount_percentage) / 100.0)
    else:
        total = monthly
    return round(max(total, 0.0), 2)
