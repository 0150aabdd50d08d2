"""
Recommendation Engine — advisory suggestions for the current cart.

Rules run in a fixed order and each one is independent:
   1. loyalty tier upgrade            7. margin below target
   2. fee-rate tier upgrade           8. high-margin upsell focus
   3. fee waiver proximity            9. bundle suggestion
   4. switch to annual billing       10. service charge below minimum
   5. seasonal campaign              11. profitability (exactly one message)
   6. next volume discount           12. complementary category upsell

Output is a list of plain strings. Nothing here changes the cart.
"""
import logging
from datetime import date
from typing import Optional

from quotedesk.core.cart import CartLine, QuoteConfig
from quotedesk.core.catalog import Catalog, default_catalog
from quotedesk.core.config import resolve_config, billing_multiplier, BILLING_CYCLES, BILLING_ANNUAL
from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES
from quotedesk.core.money import format_currency, is_number, require_finite
from quotedesk.pricing.discounts import seasonal_campaign, next_volume_tier
from quotedesk.pricing.fees import next_fee_tier
from quotedesk.pricing.loyalty import next_loyalty_tier
from quotedesk.pricing.quote import compute_quote, price_line

log = logging.getLogger("quotedesk.pricing")


def _validate(lines, service_charge, billing_cycle, profit_before_tax):
    if not isinstance(lines, (list, tuple)) or not all(isinstance(l, CartLine) for l in lines):
        raise QuoteValidationError("lines must be a list of CartLine")
    if not is_number(service_charge) or service_charge < 0:
        raise QuoteValidationError(ERROR_MESSAGES["INVALID_SERVICE_CHARGE"])
    if billing_cycle not in BILLING_CYCLES:
        raise QuoteValidationError(
            f"{ERROR_MESSAGES['INVALID_BILLING_CYCLE']}, got {billing_cycle!r}")
    if not is_number(profit_before_tax):
        raise QuoteValidationError(f"profit_before_tax must be a number, got {profit_before_tax!r}")


def profitability_message(profit_before_tax: float, config: Optional[dict] = None) -> str:
    config = resolve_config(config)
    threshold = config["min_profit_threshold"]
    if profit_before_tax < 0:
        return "Warning: Your current configuration is not profitable. Review your pricing and costs."
    if profit_before_tax < threshold:
        return (f"Your profit (${profit_before_tax:.2f}) is below the recommended threshold "
                f"of ${threshold:.0f}. Consider increasing margins or service fees, or reducing costs.")
    return (f"Your configuration is profitable (${profit_before_tax:.2f}). "
            f"Look for further upsell opportunities or cost optimizations.")


def complementary_suggestion(lines, billing_cycle: str, catalog: Optional[Catalog] = None,
                             config: Optional[dict] = None) -> Optional[str]:
    """Suggest a catalog product from the first complementary category the cart lacks."""
    config = resolve_config(config)
    catalog = catalog if catalog is not None else default_catalog()
    selected = [l.product.category for l in lines]
    missing = []
    for category, complements in config["complementary_categories"].items():
        if category not in selected:
            continue
        for c in complements:
            if c not in selected and c not in missing:
                missing.append(c)

    for category in missing:
        candidates = catalog.by_category(category)
        if not candidates:
            continue
        product = candidates[0]
        qty = int(config["upsell_nominal_qty"])
        revenue = format_currency(product.tiers[0].recommended_price * qty
                                  * billing_multiplier(billing_cycle, config))
        period = "per year" if billing_cycle == BILLING_ANNUAL else "per month"
        return (f'Enhance your solution by adding a "{product.category}" product like '
                f'"{product.name}". This can provide a more comprehensive backup strategy '
                f'and increase your revenue by approximately ${revenue:.2f} {period} '
                f'for {qty} units.')
    return None


def get_recommendations(lines, service_charge: float, billing_cycle: str,
                        profit_before_tax: float, total_spend: float = 0,
                        monthly_volume: float = 0, reference_date: Optional[date] = None,
                        catalog: Optional[Catalog] = None,
                        config: Optional[dict] = None) -> list:
    """
    Ordered advisory strings for a cart.

    Args:
        lines: CartLine list
        service_charge: monthly Professional Services & Support charge
        billing_cycle: "monthly" or "annual"
        profit_before_tax: from the aggregator, drives rule 11
        total_spend: cumulative customer spend, drives loyalty advice
        monthly_volume: processed volume, drives fee-tier advice
        reference_date: date used for the seasonal campaign (default today)
        catalog: product source for the complementary upsell

    Raises:
        QuoteValidationError: on malformed arguments.
    """
    config = resolve_config(config)
    lines = list(lines) if isinstance(lines, tuple) else lines
    _validate(lines, service_charge, billing_cycle, profit_before_tax)
    total_spend = require_finite(total_spend, "total_spend", minimum=0)
    monthly_volume = require_finite(monthly_volume, "monthly_volume", minimum=0)
    recs = []
    is_annual = billing_cycle == BILLING_ANNUAL
    processing = config["processing"]

    # 1. loyalty
    nxt = next_loyalty_tier(total_spend, config)
    if nxt is not None:
        recs.append(
            f"Add ${nxt.min_spend - total_spend:.2f} more to your total spend to reach "
            f"{nxt.name} tier and get {nxt.processing_fee_discount * 100:.0f}% off processing fees.")

    # 2. fee-rate tier
    nxt_fee = next_fee_tier(monthly_volume, config)
    if nxt_fee is not None:
        recs.append(
            f"Increase your monthly volume by ${nxt_fee.min_volume - monthly_volume:.2f} "
            f"to qualify for lower processing fees ({nxt_fee.label}).")

    # 3. waiver proximity, measured on the same amount the fee is charged on
    if not is_annual:
        monthly = compute_quote(lines, QuoteConfig(
            billing_cycle=billing_cycle, service_charge=service_charge,
            monthly_volume=monthly_volume, total_spend=total_spend,
            reference_date=reference_date), config)
        threshold = processing["min_amount_for_waiver"]
        if monthly.fee.amount < threshold:
            recs.append(
                f"Add ${threshold - monthly.fee.amount:.2f} more to your order to qualify "
                f"for automatic payment processing fee waiver.")

    # 4. annual billing
    if not is_annual and processing.get("annual_commitment_waiver", True):
        recs.append("Switch to annual billing to automatically waive payment processing fees.")

    # 5. seasonal
    campaign = seasonal_campaign(reference_date, config)
    if campaign.discount > 0:
        recs.append(f"Take advantage of our {campaign.name} with {campaign.discount * 100:.0f}% off!")

    standard = [l for l in lines if not l.product.is_home_grown]

    # 6. volume
    for line in standard:
        tier = next_volume_tier(line.qty, config)
        if tier is not None:
            recs.append(
                f"Add {tier['min_qty'] - line.qty} more {line.name} units to qualify for "
                f"{tier['discount'] * 100:.0f}% volume discount.")

    # 7 / 8. margins
    priced = [(l, price_line(l, billing_cycle, reference_date, config)) for l in standard]
    target = config["target_margin"]
    for line, result in priced:
        if result.margin < target:
            recs.append(
                f'Increase the margin for "{line.name}" (currently {result.margin * 100:.1f}%) '
                f"to at least {target * 100:.1f}% to improve profitability.")
    for line, result in priced:
        if result.margin >= config["high_margin"]:
            recs.append(
                f'Focus on upselling "{line.name}" (margin {result.margin * 100:.1f}%) '
                f"for better profit.")

    # 9. bundle
    if len(lines) > 1:
        recs.append(
            "Bundle multiple products/services for a more attractive offer. Consider offering "
            f"a {config['annual_discount_rate'] * 100:.0f}% discount for annual commitments.")

    # 10. service charge
    if service_charge < config["min_service_fee"]:
        recs.append(
            "Consider increasing your Professional Services & Support fee to at least "
            f"${config['min_service_fee']:.0f}/year to match industry averages.")

    # 11. profitability
    recs.append(profitability_message(profit_before_tax, config))

    # 12. complementary
    suggestion = complementary_suggestion(lines, billing_cycle, catalog, config)
    if suggestion:
        recs.append(suggestion)

    log.debug("%d recommendations for %d lines", len(recs), len(lines))
    return recs
