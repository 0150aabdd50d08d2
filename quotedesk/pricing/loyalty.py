"""
Loyalty / Commitment Resolver.

Loyalty tiers are keyed by cumulative customer spend; commitment levels
by contract term in months. Both are threshold lookups over config tables.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from quotedesk.core.config import resolve_config, BILLING_MONTHLY, BILLING_ANNUAL
from quotedesk.core.errors import QuoteValidationError
from quotedesk.core.money import require_finite

log = logging.getLogger("quotedesk.pricing")


@dataclass(frozen=True)
class LoyaltyTier:
    key: str
    name: str
    min_spend: float
    processing_fee_discount: float = 0.0
    service_fee_discount: float = 0.0
    special_promotions: bool = False
    priority_support: bool = False
    dedicated_account_manager: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "min_spend": self.min_spend,
            "processing_fee_discount": self.processing_fee_discount,
            "service_fee_discount": self.service_fee_discount,
            "special_promotions": self.special_promotions,
            "priority_support": self.priority_support,
            "dedicated_account_manager": self.dedicated_account_manager,
        }


@dataclass(frozen=True)
class CommitmentLevel:
    key: str
    name: str
    discount: float
    min_term_months: int
    cancellation_fee_pct: float = 0.0
    features: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "discount": self.discount,
            "min_term_months": self.min_term_months,
            "cancellation_fee_pct": self.cancellation_fee_pct,
            "features": list(self.features),
        }


# ─── Loyalty ─────────────────────────────────────────────────────────────────

def loyalty_tiers(config: Optional[dict] = None) -> Tuple[LoyaltyTier, ...]:
    """All loyalty tiers, ascending by min_spend."""
    config = resolve_config(config)
    tiers = (LoyaltyTier(**t) for t in config["loyalty_tiers"])
    return tuple(sorted(tiers, key=lambda t: t.min_spend))


def resolve_loyalty_tier(total_spend: float = 0, config: Optional[dict] = None) -> LoyaltyTier:
    total_spend = require_finite(total_spend, "total_spend")
    tiers = loyalty_tiers(config)
    for tier in reversed(tiers):
        if total_spend >= tier.min_spend:
            return tier
    return tiers[0]


def next_loyalty_tier(total_spend: float = 0, config: Optional[dict] = None) -> Optional[LoyaltyTier]:
    total_spend = require_finite(total_spend, "total_spend")
    for tier in loyalty_tiers(config):
        if tier.min_spend > total_spend:
            return tier
    return None


def is_top_loyalty_tier(tier: LoyaltyTier, config: Optional[dict] = None) -> bool:
    return tier.key == loyalty_tiers(config)[-1].key


# ─── Commitment ──────────────────────────────────────────────────────────────

_BILLING_TO_COMMITMENT = {BILLING_MONTHLY: "MONTHLY", BILLING_ANNUAL: "ANNUAL"}


def commitment_levels(config: Optional[dict] = None) -> Tuple[CommitmentLevel, ...]:
    config = resolve_config(config)
    levels = (CommitmentLevel(**dict(c, features=tuple(c.get("features", ()))))
              for c in config["commitment_levels"])
    return tuple(sorted(levels, key=lambda c: c.min_term_months))


def resolve_commitment(level: Union[str, int, CommitmentLevel, None] = None,
                       config: Optional[dict] = None) -> CommitmentLevel:
    """
    Resolve a commitment level from a key, a billing cycle or a term.

    Args:
        level: "QUARTERLY" / "annual" style key (case-insensitive), a term
            in months (threshold lookup), an existing CommitmentLevel, or
            None for the shortest level.
    """
    levels = commitment_levels(config)
    if isinstance(level, CommitmentLevel):
        return level
    if level is None:
        return levels[0]
    if isinstance(level, bool):
        raise QuoteValidationError(f"Unknown commitment level: {level!r}")
    if isinstance(level, int):
        chosen = levels[0]
        for c in levels:
            if level >= c.min_term_months:
                chosen = c
        return chosen
    if isinstance(level, str):
        key = level.strip()
        key = _BILLING_TO_COMMITMENT.get(key.lower(), key.upper().replace("-", ""))
        for c in levels:
            if c.key == key:
                return c
    raise QuoteValidationError(f"Unknown commitment level: {level!r}")


def next_commitment(level, config: Optional[dict] = None) -> Optional[CommitmentLevel]:
    current = resolve_commitment(level, config)
    for c in commitment_levels(config):
        if c.min_term_months > current.min_term_months:
            return c
    return None
