"""
Discount Engine — volume and seasonal discounts.

Volume and seasonal discounts stack additively and the sum is capped at
max_total_discount (30%).
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from quotedesk.core.config import resolve_config
from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES, check_invariant

log = logging.getLogger("quotedesk.pricing")


@dataclass(frozen=True)
class SeasonalCampaign:
    key: str
    name: str
    discount: float

    def to_dict(self) -> dict:
        return {"key": self.key, "name": self.name, "discount": self.discount}


@dataclass(frozen=True)
class DiscountResult:
    volume_discount: float
    seasonal_discount: float
    total_discount: float
    campaign: SeasonalCampaign

    def to_dict(self) -> dict:
        return {
            "volume_discount": self.volume_discount,
            "seasonal_discount": self.seasonal_discount,
            "total_discount": self.total_discount,
            "campaign": self.campaign.to_dict(),
        }


def _volume_table(config: dict) -> list:
    return sorted(config["volume_discounts"], key=lambda d: d["min_qty"])


def volume_discount(qty: int, config: Optional[dict] = None) -> float:
    """Discount of the highest volume threshold at or below qty."""
    config = resolve_config(config)
    discount = 0.0
    for entry in _volume_table(config):
        if qty >= entry["min_qty"]:
            discount = float(entry["discount"])
    return discount


def next_volume_tier(qty: int, config: Optional[dict] = None) -> Optional[dict]:
    config = resolve_config(config)
    for entry in _volume_table(config):
        if entry["min_qty"] > qty:
            return entry
    return None


def seasonal_campaign(reference_date: Optional[date] = None,
                      config: Optional[dict] = None) -> SeasonalCampaign:
    config = resolve_config(config)
    if not config.get("seasonal_pricing_enabled", True):
        return SeasonalCampaign("STANDARD", config["standard_campaign_name"], 0.0)
    month = (reference_date or date.today()).month
    for c in config["seasonal_campaigns"]:
        if month in c["months"]:
            return SeasonalCampaign(c["key"], c["name"], float(c["discount"]))
    return SeasonalCampaign("STANDARD", config["standard_campaign_name"], 0.0)


def compute_discount(qty: int, reference_date: Optional[date] = None,
                     config: Optional[dict] = None) -> DiscountResult:
    config = resolve_config(config)
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_QUANTITY']}, got {qty!r}")
    cap = float(config["max_total_discount"])
    vol = volume_discount(qty, config)
    campaign = seasonal_campaign(reference_date, config)
    total = min(vol + campaign.discount, cap)
    if not check_invariant(0.0 <= total <= cap,
                           f"total discount {total} outside [0, {cap}]", config):
        total = max(0.0, min(total, cap))
    return DiscountResult(vol, campaign.discount, total, campaign)


def apply_discount(recommended_price: float, total_discount: float) -> float:
    return recommended_price * (1 - total_discount)
