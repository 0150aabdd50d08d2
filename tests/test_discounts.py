"""Tests for volume and seasonal discounts."""
from datetime import date

import pytest

from quotedesk.core.config import load_config
from quotedesk.core.errors import ConsistencyError, QuoteValidationError
from quotedesk.pricing.discounts import (
    apply_discount, compute_discount, next_volume_tier, seasonal_campaign, volume_discount,
)


class TestVolumeDiscount:
    @pytest.mark.parametrize("qty,expected", [
        (0, 0.0), (1, 0.0), (4, 0.0), (5, 0.05), (9, 0.05), (10, 0.10),
        (19, 0.10), (20, 0.15), (49, 0.15), (50, 0.20), (5000, 0.20),
    ])
    def test_thresholds(self, qty, expected, config):
        assert volume_discount(qty, config) == expected

    def test_next_volume_tier(self, config):
        assert next_volume_tier(4, config) == {"min_qty": 5, "discount": 0.05}
        assert next_volume_tier(10, config)["min_qty"] == 20
        assert next_volume_tier(50, config) is None


class TestSeasonalCampaign:
    @pytest.mark.parametrize("month,name,discount", [
        (1, "New Year Special", 0.10), (3, "New Year Special", 0.10),
        (5, "Spring Promotion", 0.05), (8, "Summer Sale", 0.15),
        (11, "Year-End Deal", 0.20), (12, "Year-End Deal", 0.20),
    ])
    def test_month_to_campaign(self, month, name, discount, config):
        c = seasonal_campaign(date(2026, month, 1), config)
        assert c.name == name
        assert c.discount == discount

    def test_disabled(self, flat_config):
        c = seasonal_campaign(date(2026, 11, 1), flat_config)
        assert c.name == "Standard Pricing"
        assert c.discount == 0.0


class TestComputeDiscount:
    def test_stacks_volume_and_seasonal(self, config):
        d = compute_discount(10, date(2026, 5, 1), config)
        assert d.volume_discount == 0.10
        assert d.seasonal_discount == 0.05
        assert d.total_discount == pytest.approx(0.15)

    def test_capped_at_thirty_percent(self, config):
        d = compute_discount(50, date(2026, 11, 1), config)
        assert d.volume_discount + d.seasonal_discount == pytest.approx(0.40)
        assert d.total_discount == 0.30

    def test_bound_holds_for_all_quantities_and_months(self, config):
        for month in range(1, 13):
            for qty in range(0, 201):
                total = compute_discount(qty, date(2026, month, 15), config).total_discount
                assert 0.0 <= total <= 0.30

    def test_invalid_quantity(self, config):
        with pytest.raises(QuoteValidationError):
            compute_discount(-1, None, config)
        with pytest.raises(QuoteValidationError):
            compute_discount(2.5, None, config)

    def test_negative_discount_raises_when_strict(self):
        cfg = load_config({"strict_invariants": True, "seasonal_pricing_enabled": False,
                           "volume_discounts": [{"min_qty": 1, "discount": -0.5}]})
        with pytest.raises(ConsistencyError):
            compute_discount(3, None, cfg)

    def test_negative_discount_clamped_when_lenient(self):
        cfg = load_config({"strict_invariants": False, "seasonal_pricing_enabled": False,
                           "volume_discounts": [{"min_qty": 1, "discount": -0.5}]})
        assert compute_discount(3, None, cfg).total_discount == 0.0


class TestQuantityStepIntoDiscount:
    def test_fifth_unit_takes_exactly_five_percent(self, desktop):
        cfg = load_config({"strict_invariants": True, "seasonal_pricing_enabled": False,
                           "volume_discounts": [{"min_qty": 5, "discount": 0.05}]})
        rp = desktop.tiers[0].recommended_price
        at_four = apply_discount(rp, compute_discount(4, None, cfg).total_discount)
        at_five = apply_discount(rp, compute_discount(5, None, cfg).total_discount)
        assert at_four == pytest.approx(rp)
        assert at_five == pytest.approx(rp * 0.95)

    def test_apply_discount(self):
        assert apply_discount(10.0, 0.05) == pytest.approx(9.5)
