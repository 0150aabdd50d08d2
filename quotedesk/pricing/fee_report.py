"""
Fee savings report: what the customer saves today through loyalty and
volume pricing, and what the next loyalty or volume tier would save.
"""
from typing import Optional

from quotedesk.core.config import resolve_config
from quotedesk.core.money import format_currency
from quotedesk.pricing.fees import (
    FeeResult, base_processing_fee, fee_tiers, resolve_fee_tier, next_fee_tier,
)
from quotedesk.pricing.loyalty import resolve_loyalty_tier, next_loyalty_tier

# fee amounts are per monthly invoice
MONTHS_PER_YEAR = 12


def _annual(per_month: float) -> float:
    return format_currency(per_month * MONTHS_PER_YEAR)


def _percentage(part: float, whole: float) -> float:
    return format_currency(part / whole * 100) if whole else 0.0


def calculate_fee_savings(fee_result: FeeResult, monthly_volume: float = 0,
                          total_spend: float = 0, config: Optional[dict] = None) -> dict:
    config = resolve_config(config)
    amount = fee_result.amount
    standard = fee_tiers(config)[0]
    standard_fee = base_processing_fee(amount, standard)
    tier = resolve_fee_tier(monthly_volume, config)
    tier_fee = base_processing_fee(amount, tier)

    loyalty = resolve_loyalty_tier(total_spend, config)
    loyalty_savings = 0.0 if fee_result.is_waived else tier_fee * loyalty.processing_fee_discount
    volume_savings = standard_fee - tier_fee

    savings = {
        "loyalty": {
            "current": {"tier": loyalty.name, "savings": format_currency(loyalty_savings),
                        "annual_savings": _annual(loyalty_savings)},
            "next": None,
        },
        "volume": {
            "current": {"tier": tier.label, "fee": format_currency(tier_fee),
                        "savings": format_currency(volume_savings),
                        "annual_savings": _annual(volume_savings)},
            "next": None,
        },
        "total_current_savings": format_currency(loyalty_savings + volume_savings),
        "total_current_annual_savings": _annual(loyalty_savings + volume_savings),
        "current_savings_percentage": _percentage(loyalty_savings + volume_savings, standard_fee),
        "total_potential_savings": 0.0,
        "total_potential_annual_savings": 0.0,
        "potential_savings_percentage": 0.0,
        "recommendations": [],
    }
    potential = 0.0

    nxt = next_loyalty_tier(total_spend, config)
    if nxt is not None:
        extra = tier_fee * (nxt.processing_fee_discount - loyalty.processing_fee_discount)
        needed = nxt.min_spend - total_spend
        savings["loyalty"]["next"] = {
            "tier": nxt.name,
            "savings": format_currency(extra),
            "annual_savings": _annual(extra),
            "spend_needed": format_currency(needed),
        }
        potential += extra
        savings["recommendations"].append({
            "type": "loyalty",
            "message": f"Upgrade to {nxt.name} tier by spending ${needed:.2f} more "
                       f"to save an additional ${extra:.2f} per transaction.",
            "potential_savings": format_currency(extra),
        })

    nxt_fee = next_fee_tier(monthly_volume, config)
    if nxt_fee is not None:
        extra = tier_fee - base_processing_fee(amount, nxt_fee)
        needed = nxt_fee.min_volume - monthly_volume
        savings["volume"]["next"] = {
            "tier": nxt_fee.label,
            "fee": format_currency(base_processing_fee(amount, nxt_fee)),
            "savings": format_currency(extra),
            "annual_savings": _annual(extra),
            "volume_needed": format_currency(needed),
        }
        potential += extra
        savings["recommendations"].append({
            "type": "volume",
            "message": f"Increase monthly volume by ${needed:.2f} to qualify for "
                       f"lower processing fees ({nxt_fee.label}).",
            "potential_savings": format_currency(extra),
        })

    savings["total_potential_savings"] = format_currency(potential)
    savings["total_potential_annual_savings"] = _annual(potential)
    savings["potential_savings_percentage"] = _percentage(potential, standard_fee)
    return savings


def generate_fee_report(fee_result: FeeResult, monthly_volume: float = 0,
                        total_spend: float = 0, config: Optional[dict] = None) -> dict:
    savings = calculate_fee_savings(fee_result, monthly_volume, total_spend, config)
    return {
        "current_fees": {
            "amount": fee_result.amount,
            "fee": fee_result.fee,
            "original_fee": fee_result.original_fee,
            "is_waived": fee_result.is_waived,
            "reason": fee_result.reason,
            "loyalty_tier": fee_result.loyalty_tier,
            "fee_tier": fee_result.fee_tier.label,
        },
        "current_savings": {
            "loyalty": savings["loyalty"]["current"],
            "volume": savings["volume"]["current"],
        },
        "potential_savings": {
            "loyalty": savings["loyalty"]["next"],
            "volume": savings["volume"]["next"],
        },
        "total_savings": {
            "current": savings["total_current_savings"],
            "current_annual": savings["total_current_annual_savings"],
            "current_percentage": savings["current_savings_percentage"],
            "potential": savings["total_potential_savings"],
            "potential_annual": savings["total_potential_annual_savings"],
            "potential_percentage": savings["potential_savings_percentage"],
        },
        "recommendations": savings["recommendations"],
    }
