"""Tests for processing fees, waivers, tax and the fee savings report."""
import pytest

from quotedesk.core.config import load_config
from quotedesk.core.errors import ConsistencyError, QuoteValidationError
from quotedesk.pricing.fee_report import calculate_fee_savings, generate_fee_report
from quotedesk.pricing.fees import (
    REASON_ANNUAL, REASON_MANUAL, REASON_STANDARD, REASON_THRESHOLD,
    compute_processing_fee, compute_tax, fee_tiers, next_fee_tier, resolve_fee_tier,
)


class TestFeeTiers:
    def test_resolve(self, config):
        assert resolve_fee_tier(0, config).percentage_fee == 0.0299
        assert resolve_fee_tier(9999.99, config).min_volume == 0
        assert resolve_fee_tier(10000, config).percentage_fee == 0.0275
        assert resolve_fee_tier(750000, config).fixed_fee == 0.10

    def test_rates_never_rise_with_volume(self, config):
        volumes = [0, 5000, 10000, 25000, 50000, 99999, 100000, 499999, 500000, 10 ** 7]
        tiers = [resolve_fee_tier(v, config) for v in volumes]
        for lo, hi in zip(tiers, tiers[1:]):
            assert hi.percentage_fee <= lo.percentage_fee
            assert hi.fixed_fee <= lo.fixed_fee

    def test_rising_table_is_a_consistency_error(self):
        cfg = load_config({"strict_invariants": True, "processing": {"fee_tiers": [
            {"min_volume": 0, "fixed_fee": 0.30, "percentage_fee": 0.02},
            {"min_volume": 1000, "fixed_fee": 0.30, "percentage_fee": 0.03},
        ]}})
        with pytest.raises(ConsistencyError):
            fee_tiers(cfg)

    def test_next_tier(self, config):
        assert next_fee_tier(0, config).min_volume == 10000
        assert next_fee_tier(500000, config) is None

    def test_label(self, config):
        assert resolve_fee_tier(10000, config).label == "2.75% + $0.25"


class TestProcessingFee:
    def test_standard_fee(self, config):
        fee = compute_processing_fee(100, config=config)
        assert fee.fee == 3.29
        assert not fee.is_waived
        assert fee.reason == REASON_STANDARD

    def test_volume_tier_rate(self, config):
        fee = compute_processing_fee(100, monthly_volume=10000, config=config)
        assert fee.fee == 3.00

    def test_silver_discount(self, config):
        fee = compute_processing_fee(100, total_spend=5000, config=config)
        assert fee.fee == 2.47
        assert fee.original_fee == 3.29
        assert fee.loyalty_tier == "Silver"

    def test_gold_halves_fee(self, config):
        fee = compute_processing_fee(100, total_spend=20000, config=config)
        assert fee.fee == pytest.approx(1.645, abs=0.006)

    def test_amount_over_threshold_waived(self, config):
        fee = compute_processing_fee(1200, is_annual=False, waive=False, config=config)
        assert fee.fee == 0
        assert fee.is_waived
        assert fee.reason == REASON_THRESHOLD

    def test_very_large_amount(self, config):
        fee = compute_processing_fee(1e26, config=config)
        assert fee.amount == 1e26
        assert fee.fee == 0
        assert fee.reason == REASON_THRESHOLD

    def test_threshold_is_inclusive(self, config):
        assert compute_processing_fee(1000, config=config).reason == REASON_THRESHOLD

    def test_annual_waiver(self, config):
        fee = compute_processing_fee(500, is_annual=True, config=config)
        assert fee.fee == 0
        assert fee.reason == REASON_ANNUAL

    def test_annual_waiver_policy_off(self):
        cfg = load_config({"processing": {"annual_commitment_waiver": False}})
        fee = compute_processing_fee(500, is_annual=True, config=cfg)
        assert fee.fee > 0

    def test_top_loyalty_tier_waived(self, config):
        fee = compute_processing_fee(500, total_spend=50000, config=config)
        assert fee.fee == 0
        assert fee.reason == "Platinum tier benefit"

    def test_manual_waiver_wins(self, config):
        fee = compute_processing_fee(5000, is_annual=True, waive=True, total_spend=90000, config=config)
        assert fee.reason == REASON_MANUAL

    def test_waive_always_zero(self, config):
        for amount in (0, 0.01, 10, 999.99, 1000, 10 ** 6):
            for annual in (False, True):
                for spend in (0, 5000, 60000):
                    fee = compute_processing_fee(amount, annual, True, 20000, spend, config)
                    assert fee.fee == 0.0
                    assert fee.reason == REASON_MANUAL

    @pytest.mark.parametrize("bad", [-1, float("nan"), float("inf"), "100", None])
    def test_invalid_amount(self, bad, config):
        with pytest.raises(QuoteValidationError):
            compute_processing_fee(bad, config=config)

    def test_to_dict(self, config):
        data = compute_processing_fee(100, config=config).to_dict()
        assert data["fee"] == 3.29
        assert data["fee_tier"]["label"] == "2.99% + $0.30"


class TestTax:
    def test_rate(self, config):
        assert compute_tax(100, config) == pytest.approx(13.0)

    def test_invalid(self, config):
        with pytest.raises(QuoteValidationError):
            compute_tax(float("inf"), config)


class TestFeeReport:
    def test_bronze_base_volume(self, config):
        fee = compute_processing_fee(100, config=config)
        savings = calculate_fee_savings(fee, 0, 0, config)
        assert savings["loyalty"]["current"]["tier"] == "Bronze"
        assert savings["loyalty"]["next"]["tier"] == "Silver"
        assert savings["loyalty"]["next"]["spend_needed"] == 5000.0
        assert savings["volume"]["next"]["tier"] == "2.75% + $0.25"
        assert [r["type"] for r in savings["recommendations"]] == ["loyalty", "volume"]
        assert savings["recommendations"][0]["message"].startswith(
            "Upgrade to Silver tier by spending $5000.00 more")
        assert savings["recommendations"][1]["message"].startswith(
            "Increase monthly volume by $10000.00")

    def test_current_volume_savings(self, config):
        fee = compute_processing_fee(100, monthly_volume=10000, config=config)
        savings = calculate_fee_savings(fee, 10000, 0, config)
        assert savings["volume"]["current"]["savings"] == pytest.approx(0.29)
        assert savings["volume"]["current"]["annual_savings"] == pytest.approx(3.48)
        assert savings["total_current_annual_savings"] == pytest.approx(3.48)
        assert savings["current_savings_percentage"] == pytest.approx(8.81, abs=0.01)

    def test_next_loyalty_tier_annual_savings(self, config):
        fee = compute_processing_fee(100, config=config)
        nxt = calculate_fee_savings(fee, 0, 0, config)["loyalty"]["next"]
        assert nxt["savings"] == pytest.approx(0.82, abs=0.01)
        assert nxt["annual_savings"] == pytest.approx(9.87, abs=0.01)

    def test_report_totals_include_annual_and_percentage(self, config):
        fee = compute_processing_fee(100, config=config)
        totals = generate_fee_report(fee, 0, 0, config)["total_savings"]
        assert set(totals) == {"current", "current_annual", "current_percentage",
                               "potential", "potential_annual", "potential_percentage"}
        assert totals["current"] == 0.0
        assert totals["potential_annual"] == pytest.approx(totals["potential"] * 12, abs=0.06)
        assert totals["potential_percentage"] > 0

    def test_nothing_left_to_gain(self, config):
        fee = compute_processing_fee(100, monthly_volume=600000, total_spend=60000, config=config)
        report = generate_fee_report(fee, 600000, 60000, config)
        assert report["potential_savings"] == {"loyalty": None, "volume": None}
        assert report["recommendations"] == []
        assert report["total_savings"]["potential"] == 0.0

    def test_report_shape(self, config):
        fee = compute_processing_fee(250, config=config)
        report = generate_fee_report(fee, 0, 0, config)
        assert set(report) == {"current_fees", "current_savings", "potential_savings",
                               "total_savings", "recommendations"}
        assert report["current_fees"]["fee"] == fee.fee
