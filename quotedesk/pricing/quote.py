"""
Quote Aggregator — per-line pricing and cart totals.

Line (standard product):
    unit price  = unit cost x (1 + margin) x (1 - discount)
    subtotal    = unit price x qty x billing multiplier
    vendor cost = unit cost x qty x multiplier [x (1 + tax) when tax-inclusive]
Line (flat-rate product): flat cost plus tax, no margin, no discount.

Cart:
    service     = service charge x multiplier x (1 - loyalty service discount)
    tax         = (subtotal + service) x tax rate
    fee         = processing fee on (subtotal + service + tax)
    final total = subtotal + service + tax + fee
    profit      = subtotal - vendor cost + service - fee
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from quotedesk.core.cart import CartLine, CartState, QuoteConfig
from quotedesk.core.catalog import UNSET, margin_value
from quotedesk.core.config import resolve_config, billing_multiplier, BILLING_ANNUAL
from quotedesk.core.errors import catalog_warning, QuoteValidationError
from quotedesk.core.money import format_currency
from quotedesk.pricing.discounts import DiscountResult, SeasonalCampaign, compute_discount, apply_discount
from quotedesk.pricing.fees import FeeResult, compute_processing_fee
from quotedesk.pricing.loyalty import resolve_loyalty_tier
from quotedesk.pricing.tiers import resolve_tier

log = logging.getLogger("quotedesk.pricing")


@dataclass(frozen=True)
class LineResult:
    name: str
    category: str
    license: str
    qty: int
    is_home_grown: bool
    tier_min_qty: int
    tier_max_qty: Optional[int]
    unit_cost: float
    margin: float
    list_price: float
    unit_price: float
    margin_amount: float
    subtotal: float
    tax_amount: float
    line_total: float
    vendor_cost: float
    discount: DiscountResult

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "category": self.category,
            "license": self.license,
            "qty": self.qty,
            "is_home_grown": self.is_home_grown,
            "tier": {"min_qty": self.tier_min_qty, "max_qty": self.tier_max_qty},
            "unit_cost": self.unit_cost,
            "margin": self.margin,
            "list_price": self.list_price,
            "unit_price": self.unit_price,
            "margin_amount": self.margin_amount,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "line_total": self.line_total,
            "vendor_cost": self.vendor_cost,
            "discount": self.discount.to_dict(),
        }


@dataclass(frozen=True)
class QuoteResult:
    lines: Tuple[LineResult, ...]
    billing_cycle: str
    billing_multiplier: int
    subtotal: float
    service_charge: float
    tax: float
    processing_fee: float
    final_total: float
    vendor_cost: float
    profit_before_tax: float
    profit_after_tax: float
    fee: FeeResult
    loyalty_tier: str
    flags: Tuple[str, ...] = ()

    @property
    def is_profitable(self) -> bool:
        return self.profit_before_tax > 0

    def to_dict(self) -> dict:
        return {
            "lines": [l.to_dict() for l in self.lines],
            "billing_cycle": self.billing_cycle,
            "billing_multiplier": self.billing_multiplier,
            "subtotal": self.subtotal,
            "service_charge": self.service_charge,
            "tax": self.tax,
            "processing_fee": self.processing_fee,
            "final_total": self.final_total,
            "vendor_cost": self.vendor_cost,
            "profit_before_tax": self.profit_before_tax,
            "profit_after_tax": self.profit_after_tax,
            "fee": self.fee.to_dict(),
            "loyalty_tier": self.loyalty_tier,
            "flags": list(self.flags),
        }


_NO_DISCOUNT = DiscountResult(0.0, 0.0, 0.0, SeasonalCampaign("NONE", "Not applicable", 0.0))


def _effective_margin(line: CartLine, tier, flags: list) -> float:
    margin = line.margin_override if line.margin_override is not None else tier.margin
    if margin is UNSET:
        catalog_warning(flags, f"margin_unset:{line.name}",
                        "Margin for %s is unset; pricing at cost", line.name)
    return margin_value(margin)


def price_line(line: CartLine, billing_cycle: str = "monthly",
               reference_date: Optional[date] = None,
               config: Optional[dict] = None, flags: Optional[list] = None) -> LineResult:
    """Price one cart line. Catalog warnings are appended to flags."""
    config = resolve_config(config)
    flags = flags if flags is not None else []
    multiplier = billing_multiplier(billing_cycle, config)
    tax_rate = config["tax_rate"]
    product = line.product
    tier = resolve_tier(product, line.qty, flags)

    if product.is_home_grown:
        base = product.flat_cost / (1 + tax_rate) if product.tax_inclusive else product.flat_cost
        if line.unit_cost_override is not None:
            base = float(line.unit_cost_override)
        subtotal = base * line.qty * multiplier
        tax_amount = subtotal * tax_rate
        return LineResult(
            name=product.name, category=product.category, license=product.license,
            qty=line.qty, is_home_grown=True,
            tier_min_qty=tier.min_qty, tier_max_qty=tier.max_qty,
            unit_cost=format_currency(base), margin=0.0,
            list_price=format_currency(base), unit_price=format_currency(base),
            margin_amount=0.0,
            subtotal=format_currency(subtotal),
            tax_amount=format_currency(tax_amount),
            line_total=format_currency(subtotal + tax_amount),
            vendor_cost=format_currency(subtotal),
            discount=_NO_DISCOUNT,
        )

    unit_cost = tier.unit_cost if line.unit_cost_override is None else float(line.unit_cost_override)
    margin = _effective_margin(line, tier, flags)
    list_price = unit_cost * (1 + margin)
    discount = compute_discount(line.qty, reference_date, config)
    unit_price = apply_discount(list_price, discount.total_discount)
    subtotal = unit_price * line.qty * multiplier
    tax_amount = subtotal * tax_rate
    vendor_cost = unit_cost * line.qty * multiplier
    if config.get("vendor_cost_tax_inclusive", True):
        vendor_cost *= 1 + tax_rate

    return LineResult(
        name=product.name, category=product.category, license=product.license,
        qty=line.qty, is_home_grown=False,
        tier_min_qty=tier.min_qty, tier_max_qty=tier.max_qty,
        unit_cost=format_currency(unit_cost), margin=margin,
        list_price=format_currency(list_price),
        unit_price=format_currency(unit_price),
        margin_amount=format_currency((unit_price - unit_cost) * line.qty * multiplier),
        subtotal=format_currency(subtotal),
        tax_amount=format_currency(tax_amount),
        line_total=format_currency(subtotal + tax_amount),
        vendor_cost=format_currency(vendor_cost),
        discount=discount,
    )


def compute_quote(lines, quote_config: Optional[QuoteConfig] = None,
                  config: Optional[dict] = None) -> QuoteResult:
    """
    Price a cart. Accepts a CartState or a sequence of CartLine plus a
    QuoteConfig. Every monetary output is rounded to cents.
    """
    config = resolve_config(config)
    if isinstance(lines, CartState):
        quote_config = quote_config or lines.config
        lines = lines.lines
    quote_config = quote_config or QuoteConfig()
    flags = []

    multiplier = billing_multiplier(quote_config.billing_cycle, config)
    priced = tuple(price_line(l, quote_config.billing_cycle, quote_config.reference_date,
                              config, flags) for l in lines)

    subtotal = format_currency(sum(l.subtotal for l in priced))
    vendor_cost = format_currency(sum(l.vendor_cost for l in priced))
    loyalty = resolve_loyalty_tier(quote_config.total_spend, config)
    service = format_currency(
        quote_config.service_charge * multiplier * (1 - loyalty.service_fee_discount))
    tax = format_currency((subtotal + service) * config["tax_rate"])

    fee = compute_processing_fee(
        subtotal + service + tax,
        is_annual=quote_config.billing_cycle == BILLING_ANNUAL,
        waive=quote_config.waive_processing_fee,
        monthly_volume=quote_config.monthly_volume,
        total_spend=quote_config.total_spend,
        config=config,
    )
    final_total = format_currency(subtotal + service + tax + fee.fee)
    profit = format_currency(subtotal - vendor_cost + service - fee.fee)
    profit_after_tax = format_currency(profit * (1 - config["profit_tax_rate"]))

    log.debug("quote: %d lines subtotal=%.2f total=%.2f profit=%.2f flags=%s",
              len(priced), subtotal, final_total, profit, flags)
    return QuoteResult(
        lines=priced,
        billing_cycle=quote_config.billing_cycle,
        billing_multiplier=multiplier,
        subtotal=subtotal,
        service_charge=service,
        tax=tax,
        processing_fee=fee.fee,
        final_total=final_total,
        vendor_cost=vendor_cost,
        profit_before_tax=profit,
        profit_after_tax=profit_after_tax,
        fee=fee,
        loyalty_tier=loyalty.name,
        flags=tuple(flags),
    )


def quote_summary(state: CartState, config: Optional[dict] = None, catalog=None) -> dict:
    """Quote, recommendations and fee report in one JSON-ready dict."""
    from quotedesk.pricing.fee_report import generate_fee_report
    from quotedesk.pricing.recommendations import get_recommendations

    if not isinstance(state, CartState):
        raise QuoteValidationError("quote_summary expects a CartState")
    config = resolve_config(config)
    quote = compute_quote(state, config=config)
    qc = state.config
    recs = get_recommendations(
        state.lines, qc.service_charge, qc.billing_cycle, quote.profit_before_tax,
        total_spend=qc.total_spend, monthly_volume=qc.monthly_volume,
        reference_date=qc.reference_date, catalog=catalog, config=config,
    )
    return {
        "quote": quote.to_dict(),
        "recommendations": recs,
        "fee_report": generate_fee_report(quote.fee, qc.monthly_volume, qc.total_spend, config),
    }
