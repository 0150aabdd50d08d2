"""
Commitment pricing, add-on upsells, dynamic pricing and profit optimization.

These are advisory tools on top of the quote: they never change what
compute_quote() charges. Results are plain dicts for the JSON layer.
"""
import logging
from typing import Iterable, Optional

from quotedesk.core.cart import CartLine
from quotedesk.core.config import resolve_config
from quotedesk.core.errors import QuoteValidationError
from quotedesk.core.money import format_currency, require_finite
from quotedesk.pricing.discounts import next_volume_tier
from quotedesk.pricing.loyalty import resolve_commitment, next_commitment, resolve_loyalty_tier
from quotedesk.pricing.quote import price_line

log = logging.getLogger("quotedesk.pricing")


# ─── Commitment ──────────────────────────────────────────────────────────────

def calculate_commitment_pricing(base_price: float, commitment_level="MONTHLY",
                                 quantity: int = 1, config: Optional[dict] = None) -> dict:
    base_price = require_finite(base_price, "base_price", minimum=0)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise QuoteValidationError(f"quantity must be a non-negative integer, got {quantity!r}")
    commitment = resolve_commitment(commitment_level, config)
    discounted = base_price * (1 - commitment.discount)
    total = discounted * quantity
    return {
        "commitment_level": commitment.name,
        "base_price": format_currency(base_price),
        "discounted_price": format_currency(discounted),
        "quantity": quantity,
        "total_price": format_currency(total),
        "savings": format_currency(base_price * quantity - total),
        "discount_pct": round(commitment.discount * 100, 2),
        "min_term_months": commitment.min_term_months,
        "cancellation_fee_pct": round(commitment.cancellation_fee_pct * 100, 2),
    }


# ─── Upsells ─────────────────────────────────────────────────────────────────

def get_upsell_opportunities(commitment_level="MONTHLY", current_features: Iterable[str] = (),
                             config: Optional[dict] = None) -> list:
    """
    Add-on services the customer qualifies for at this commitment and
    that bring at least one feature they do not already have.
    """
    config = resolve_config(config)
    commitment = resolve_commitment(commitment_level, config)
    have = set(current_features) | set(commitment.features)
    opportunities = []
    for opp in config["upsell_opportunities"]:
        required = resolve_commitment(opp["min_commitment"], config)
        if commitment.min_term_months < required.min_term_months:
            continue
        new_features = [f for f in opp["features"] if f not in have]
        if not new_features:
            continue
        opportunities.append({
            "key": opp["key"],
            "name": opp["name"],
            "base_price": opp["base_price"],
            "margin_pct": round(opp["margin"] * 100, 2),
            "min_commitment": required.name,
            "new_features": new_features,
            "price": calculate_commitment_pricing(opp["base_price"], commitment, 1, config),
            "potential_revenue": format_currency(opp["base_price"] * (1 - commitment.discount)),
        })
    return opportunities


# ─── Dynamic pricing ─────────────────────────────────────────────────────────

def calculate_dynamic_pricing(base_price: float, hour: Optional[int] = None,
                              demand_level: Optional[str] = None,
                              customer_type: Optional[str] = None,
                              config: Optional[dict] = None) -> float:
    """
    Adjust a price for time of day, demand and customer type.

    hour is the caller's local hour (0-23); None skips the time factor.
    Unknown demand or customer keys leave the price unchanged.
    """
    config = resolve_config(config)
    price = require_finite(base_price, "base_price", minimum=0)
    dp = config["dynamic_pricing"]
    if hour is not None:
        if hour in dp["peak_hours"]:
            price *= dp["peak_multiplier"]
        elif hour in dp["off_peak_hours"]:
            price *= dp["off_peak_multiplier"]
    if demand_level:
        price *= dp["demand"].get(demand_level.upper(), 1.0)
    if customer_type:
        price *= dp["customer"].get(customer_type.upper(), 1.0)
    return format_currency(price)


# ─── Profit optimization ─────────────────────────────────────────────────────

def calculate_optimal_pricing(line: CartLine, commitment_level="MONTHLY",
                              total_spend: float = 0, hour: Optional[int] = None,
                              demand_level: Optional[str] = None,
                              customer_type: Optional[str] = None,
                              config: Optional[dict] = None) -> dict:
    config = resolve_config(config)
    opt = config["profit_optimization"]
    commitment = resolve_commitment(commitment_level, config)
    loyalty = resolve_loyalty_tier(total_spend, config)
    margin = price_line(line, config=config).margin
    base = calculate_dynamic_pricing(line.product.tiers[0].recommended_price,
                                     hour, demand_level, customer_type, config)

    strategies = {
        "product": line.name,
        "loyalty_tier": loyalty.name,
        "quantity": {"current": line.qty, "recommended": line.qty, "potential": 0.0},
        "commitment": {"current": commitment.key, "recommended": commitment.key, "potential": 0.0},
        "upsells": [],
        "cross_sells": [],
        "total_potential": 0.0,
    }

    if margin < opt["target_profit_margin"] and not line.product.is_home_grown:
        tier = next_volume_tier(line.qty, config)
        if tier is not None:
            strategies["quantity"]["recommended"] = tier["min_qty"]
            strategies["quantity"]["potential"] = format_currency((tier["min_qty"] - line.qty) * base)
            if tier["min_qty"] >= opt["bulk_purchase_threshold"]:
                strategies["quantity"]["bulk_discount_pct"] = round(opt["bulk_purchase_discount"] * 100, 2)

    nxt = next_commitment(commitment, config)
    if nxt is not None:
        strategies["commitment"]["recommended"] = nxt.key
        strategies["commitment"]["potential"] = format_currency(
            base * line.qty * (nxt.discount - commitment.discount))
        strategies["commitment"]["additional_features"] = [
            f for f in nxt.features if f not in commitment.features]

    for u in get_upsell_opportunities(commitment, (), config):
        strategies["upsells"].append({
            "name": u["name"],
            "potential": u["potential_revenue"],
            "margin_pct": u["margin_pct"],
            "features": u["new_features"],
            "dynamic_price": calculate_dynamic_pricing(
                u["base_price"], hour, demand_level, customer_type, config),
        })

    if margin >= opt["cross_sell_threshold"]:
        for o in config["upsell_opportunities"]:
            if o["margin"] < opt["upsell_threshold"]:
                continue
            strategies["cross_sells"].append({
                "name": o["name"],
                "potential": format_currency(o["base_price"] * (1 - commitment.discount)),
                "margin_pct": round(o["margin"] * 100, 2),
                "features": list(o["features"]),
                "dynamic_price": calculate_dynamic_pricing(
                    o["base_price"], hour, demand_level, customer_type, config),
            })

    strategies["total_potential"] = format_currency(
        strategies["quantity"]["potential"]
        + strategies["commitment"]["potential"]
        + sum(u["potential"] for u in strategies["upsells"])
        + sum(c["potential"] for c in strategies["cross_sells"]))
    return strategies


def get_profit_optimization_recommendations(lines, commitment_level="MONTHLY",
                                            total_spend: float = 0,
                                            config: Optional[dict] = None) -> list:
    """Per-line quantity, commitment and upsell suggestions, biggest potential first."""
    config = resolve_config(config)
    recs = []
    for line in lines:
        optimal = calculate_optimal_pricing(line, commitment_level, total_spend, config=config)
        qty = optimal["quantity"]
        if qty["recommended"] > qty["current"]:
            recs.append({
                "type": "quantity",
                "product": line.name,
                "message": f"Increase {line.name} quantity to {qty['recommended']} units to "
                           f"qualify for volume discount and improve margin.",
                "potential": qty["potential"],
            })
        commit = optimal["commitment"]
        if commit["recommended"] != commit["current"]:
            nxt = resolve_commitment(commit["recommended"], config)
            recs.append({
                "type": "commitment",
                "product": line.name,
                "message": f"Upgrade to {nxt.name} commitment to get {nxt.discount * 100:.0f}% "
                           f"discount and improve profitability.",
                "potential": commit["potential"],
            })
        for u in optimal["upsells"]:
            recs.append({
                "type": "upsell",
                "product": line.name,
                "name": u["name"],
                "message": f"Add {u['name']} to get {', '.join(u['features'])}.",
                "potential": u["potential"],
                "margin_pct": u["margin_pct"],
            })
    recs.sort(key=lambda r: r["potential"], reverse=True)
    return recs


def get_package_name(lines) -> str:
    return "Backup Total" if len(lines) >= 2 else "Backup Basic"
