"""
Fee & Tax Calculator.

Payment processing fee = fixed + amount * percentage, using the rate tier
for the customer's monthly volume, reduced by the loyalty tier's
processing-fee discount. Waivers are checked in a fixed order and the
first match wins.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from quotedesk.core.config import resolve_config
from quotedesk.core.errors import check_invariant
from quotedesk.core.money import format_currency, require_finite
from quotedesk.pricing.loyalty import resolve_loyalty_tier, is_top_loyalty_tier

log = logging.getLogger("quotedesk.pricing")

REASON_MANUAL = "Fee waiver applied"
REASON_THRESHOLD = "Amount exceeds minimum threshold"
REASON_ANNUAL = "Annual commitment"
REASON_STANDARD = "Standard processing fee"


@dataclass(frozen=True)
class FeeTier:
    min_volume: float
    fixed_fee: float
    percentage_fee: float

    @property
    def label(self) -> str:
        return f"{self.percentage_fee * 100:.2f}% + ${self.fixed_fee:.2f}"

    def to_dict(self) -> dict:
        return {"min_volume": self.min_volume, "fixed_fee": self.fixed_fee,
                "percentage_fee": self.percentage_fee, "label": self.label}


@dataclass(frozen=True)
class FeeResult:
    amount: float
    fee: float
    original_fee: float
    is_waived: bool
    reason: str
    fee_tier: FeeTier
    loyalty_tier: str
    loyalty_discount: float

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "fee": self.fee,
            "original_fee": self.original_fee,
            "is_waived": self.is_waived,
            "reason": self.reason,
            "fee_tier": self.fee_tier.to_dict(),
            "loyalty_tier": self.loyalty_tier,
            "loyalty_discount": self.loyalty_discount,
        }


def fee_tiers(config: Optional[dict] = None) -> Tuple[FeeTier, ...]:
    """Rate tiers ascending by volume. Rates must not rise with volume."""
    config = resolve_config(config)
    tiers = tuple(sorted((FeeTier(**t) for t in config["processing"]["fee_tiers"]),
                         key=lambda t: t.min_volume))
    for lo, hi in zip(tiers, tiers[1:]):
        check_invariant(
            hi.percentage_fee <= lo.percentage_fee and hi.fixed_fee <= lo.fixed_fee,
            f"fee tier at {hi.min_volume} charges more than tier at {lo.min_volume}",
            config)
    return tiers


def resolve_fee_tier(monthly_volume: float = 0, config: Optional[dict] = None) -> FeeTier:
    tiers = fee_tiers(config)
    chosen = tiers[0]
    for tier in tiers:
        if monthly_volume >= tier.min_volume:
            chosen = tier
    return chosen


def next_fee_tier(monthly_volume: float = 0, config: Optional[dict] = None) -> Optional[FeeTier]:
    for tier in fee_tiers(config):
        if tier.min_volume > monthly_volume:
            return tier
    return None


def base_processing_fee(amount: float, tier: FeeTier) -> float:
    return tier.fixed_fee + amount * tier.percentage_fee


def compute_processing_fee(amount: float, is_annual: bool = False, waive: bool = False,
                           monthly_volume: float = 0, total_spend: float = 0,
                           config: Optional[dict] = None) -> FeeResult:
    """
    Processing fee for a charge of `amount`.

    Waiver order: manual waive, amount at/above the waiver threshold,
    annual commitment (when the policy is on), top loyalty tier.
    """
    config = resolve_config(config)
    amount = require_finite(amount, "amount", minimum=0)
    monthly_volume = require_finite(monthly_volume, "monthly_volume", minimum=0)
    processing = config["processing"]

    tier = resolve_fee_tier(monthly_volume, config)
    loyalty = resolve_loyalty_tier(total_spend, config)
    original = format_currency(base_processing_fee(amount, tier))

    reason = None
    if waive:
        reason = REASON_MANUAL
    elif amount >= processing["min_amount_for_waiver"]:
        reason = REASON_THRESHOLD
    elif is_annual and processing.get("annual_commitment_waiver", True):
        reason = REASON_ANNUAL
    elif is_top_loyalty_tier(loyalty, config):
        reason = f"{loyalty.name} tier benefit"

    if reason is not None:
        return FeeResult(format_currency(amount), 0.0, original, True, reason,
                         tier, loyalty.name, loyalty.processing_fee_discount)

    fee = format_currency(base_processing_fee(amount, tier) * (1 - loyalty.processing_fee_discount))
    return FeeResult(format_currency(amount), fee, original, False, REASON_STANDARD,
                     tier, loyalty.name, loyalty.processing_fee_discount)


def compute_tax(amount: float, config: Optional[dict] = None) -> float:
    config = resolve_config(config)
    amount = require_finite(amount, "amount")
    return amount * config["tax_rate"]
