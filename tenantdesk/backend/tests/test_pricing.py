# backend/tests/test_pricing.py
from __future__ import annotations

import pytest

from app.domain.pricing import plan_total_price


def test_monthly_price_with_plan_discount():
    assert plan_total_price(base_price_per_month=50.0, is_discounted=True, discount_percentage=10) == 45.0


def test_discount_ignored_when_plan_not_discounted():
    assert plan_total_price(base_price_per_month=50.0, is_discounted=False, discount_percentage=10) == 50.0


def test_yearly_price_applies_both_discounts():
    total = plan_total_price(
        base_price_per_month=100.0,
        is_discounted=True,
        discount_percentage=10,
        billed_yearly=True,
        can_bill_yearly=True,
        yearly_discount_percentage=20,
    )
    assert total == 864.0


def test_yearly_billing_rejected_when_plan_disallows_it():
    with pytest.raises(ValueError):
        plan_total_price(base_price_per_month=10.0, billed_yearly=True, can_bill_yearly=False)


def test_price_is_rounded_to_cents():
    assert plan_total_price(base_price_per_month=19.99, is_discounted=True, discount_percentage=33) == 13.39
