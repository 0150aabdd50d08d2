"""
Pricing configuration for QuoteDesk.

Every business constant the engine uses lives in DEFAULT_CONFIG. A JSON
file (path from QUOTEDESK_CONFIG) can override any key under its
"pricing_rules" section, and callers can pass explicit overrides on top.

The engine never reads the file per call: get_config() caches the merged
result until reload_config() is called.
"""
import copy
import json
import logging
import os
from typing import Optional

log = logging.getLogger("quotedesk.config")

CONFIG_FILE = os.environ.get("QUOTEDESK_CONFIG", "")

BILLING_MONTHLY = "monthly"
BILLING_ANNUAL = "annual"
BILLING_CYCLES = (BILLING_MONTHLY, BILLING_ANNUAL)


# ─── Defaults ────────────────────────────────────────────────────────────────

DEFAULT_CONFIG = {
    # Tax and margins
    "tax_rate": 0.13,
    "profit_tax_rate": 0.13,
    "vendor_cost_tax_inclusive": True,
    "default_margin": 0.35,
    "min_margin": 0.20,
    "target_margin": 0.35,
    "high_margin": 0.40,
    "min_profit_threshold": 200.0,
    "min_service_fee": 100.0,
    "default_service_charge": 50.0,
    "annual_discount_rate": 0.03,
    "annual_billing_multiplier": 12,
    "max_total_discount": 0.30,

    # Volume discounts: highest min_qty <= qty wins
    "volume_discounts": [
        {"min_qty": 5, "discount": 0.05},
        {"min_qty": 10, "discount": 0.10},
        {"min_qty": 20, "discount": 0.15},
        {"min_qty": 50, "discount": 0.20},
    ],

    # Quarterly campaigns keyed by calendar month
    "seasonal_pricing_enabled": True,
    "seasonal_campaigns": [
        {"key": "Q1", "name": "New Year Special", "discount": 0.10, "months": [1, 2, 3]},
        {"key": "Q2", "name": "Spring Promotion", "discount": 0.05, "months": [4, 5, 6]},
        {"key": "Q3", "name": "Summer Sale", "discount": 0.15, "months": [7, 8, 9]},
        {"key": "Q4", "name": "Year-End Deal", "discount": 0.20, "months": [10, 11, 12]},
    ],
    "standard_campaign_name": "Standard Pricing",

    # Payment processing
    "processing": {
        "min_amount_for_waiver": 1000.0,
        "annual_commitment_waiver": True,
        "fee_tiers": [
            {"min_volume": 0, "fixed_fee": 0.30, "percentage_fee": 0.0299},
            {"min_volume": 10000, "fixed_fee": 0.25, "percentage_fee": 0.0275},
            {"min_volume": 50000, "fixed_fee": 0.20, "percentage_fee": 0.025},
            {"min_volume": 100000, "fixed_fee": 0.15, "percentage_fee": 0.0225},
            {"min_volume": 500000, "fixed_fee": 0.10, "percentage_fee": 0.02},
        ],
    },

    # Loyalty tiers by cumulative spend
    "loyalty_tiers": [
        {"key": "BRONZE", "name": "Bronze", "min_spend": 0,
         "processing_fee_discount": 0.0, "service_fee_discount": 0.0},
        {"key": "SILVER", "name": "Silver", "min_spend": 5000,
         "processing_fee_discount": 0.25, "service_fee_discount": 0.10,
         "special_promotions": True},
        {"key": "GOLD", "name": "Gold", "min_spend": 20000,
         "processing_fee_discount": 0.50, "service_fee_discount": 0.20,
         "special_promotions": True, "priority_support": True},
        {"key": "PLATINUM", "name": "Platinum", "min_spend": 50000,
         "processing_fee_discount": 1.0, "service_fee_discount": 0.30,
         "special_promotions": True, "priority_support": True,
         "dedicated_account_manager": True},
    ],

    # Commitment levels by term length
    "commitment_levels": [
        {"key": "MONTHLY", "name": "Monthly", "discount": 0.0, "min_term_months": 1,
         "cancellation_fee_pct": 0.0,
         "features": ["Basic Support", "Standard Features"]},
        {"key": "QUARTERLY", "name": "Quarterly", "discount": 0.05, "min_term_months": 3,
         "cancellation_fee_pct": 0.10,
         "features": ["Priority Support", "Advanced Features", "Monthly Reports"]},
        {"key": "BIANNUAL", "name": "Bi-Annual", "discount": 0.10, "min_term_months": 6,
         "cancellation_fee_pct": 0.15,
         "features": ["Premium Support", "Enterprise Features", "Quarterly Reviews"]},
        {"key": "ANNUAL", "name": "Annual", "discount": 0.15, "min_term_months": 12,
         "cancellation_fee_pct": 0.20,
         "features": ["24/7 Support", "All Features", "Quarterly Reviews",
                      "Dedicated Account Manager"]},
    ],

    # Cross-sell map used by the recommendation engine
    "complementary_categories": {
        "Desktop": ["Server", "SaaS"],
        "Server": ["SaaS", "Virtual Server"],
        "Virtual Server": ["SaaS"],
        "SaaS": ["Server", "Virtual Server"],
    },
    "upsell_nominal_qty": 5,

    # Add-on services
    "upsell_opportunities": [
        {"key": "PREMIUM_SUPPORT", "name": "Premium Support Package",
         "base_price": 199.0, "margin": 0.75, "min_commitment": "QUARTERLY",
         "features": ["24/7 Priority Support", "Dedicated Support Engineer",
                      "4-hour Response Time", "Monthly Health Checks"]},
        {"key": "ENTERPRISE_FEATURES", "name": "Enterprise Features Pack",
         "base_price": 299.0, "margin": 0.80, "min_commitment": "BIANNUAL",
         "features": ["Advanced Analytics", "Custom Reporting",
                      "API Access", "Multi-site Management"]},
        {"key": "TRAINING_PACKAGE", "name": "Professional Training Package",
         "base_price": 499.0, "margin": 0.85, "min_commitment": "QUARTERLY",
         "features": ["Onboarding Sessions", "Admin Training",
                      "Best Practices Workshop", "Certification Program"]},
        {"key": "CUSTOM_INTEGRATION", "name": "Custom Integration Services",
         "base_price": 999.0, "margin": 0.90, "min_commitment": "ANNUAL",
         "features": ["Custom API Development", "Third-party Integration",
                      "Workflow Automation", "Dedicated Integration Engineer"]},
        {"key": "DEDICATED_SERVER", "name": "Dedicated Server Hosting",
         "base_price": 799.0, "margin": 0.85, "min_commitment": "ANNUAL",
         "features": ["Isolated Infrastructure", "Custom Configuration",
                      "Enhanced Performance", "Guaranteed Uptime"]},
        {"key": "SECURITY_PACKAGE", "name": "Advanced Security Package",
         "base_price": 399.0, "margin": 0.80, "min_commitment": "QUARTERLY",
         "features": ["Advanced Encryption", "Compliance Reporting",
                      "Security Audits", "Threat Monitoring"]},
    ],

    # Dynamic pricing multipliers
    "dynamic_pricing": {
        "peak_hours": [9, 10, 11, 14, 15, 16],
        "peak_multiplier": 1.1,
        "off_peak_hours": [0, 1, 2, 3, 4, 5, 6, 7, 8, 20, 21, 22, 23],
        "off_peak_multiplier": 0.9,
        "demand": {"HIGH": 1.15, "MEDIUM": 1.0, "LOW": 0.85},
        "customer": {"NEW": 1.0, "RETURNING": 0.95, "LOYAL": 0.90},
    },

    # Profit optimization
    "profit_optimization": {
        "min_profit_margin": 0.30,
        "target_profit_margin": 0.40,
        "high_profit_margin": 0.50,
        "bundle_discount": 0.10,
        "cross_sell_threshold": 0.15,
        "upsell_threshold": 0.25,
        "bulk_purchase_threshold": 10,
        "bulk_purchase_discount": 0.15,
    },

    # Quote document boilerplate
    "company": {
        "name": "ExcelyTech",
        "tagline": "Your Trusted Technology Partner",
        "website": "www.excelytech.com",
        "quote_prefix": "QT",
    },
    "quote_terms": [
        "Prices are subject to change without notice",
        "Payment terms: Net 30 days",
        "All prices are in USD",
        "Valid for 30 days from date of issue",
    ],

    # Consistency violations raise in development, log-and-clamp in production
    "strict_invariants": os.environ.get("QUOTEDESK_ENV", "development") != "production",
}


# ─── Loading ─────────────────────────────────────────────────────────────────

def _deep_merge(base: dict, extra: dict) -> dict:
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def load_config(overrides: Optional[dict] = None, config_file: Optional[str] = None) -> dict:
    """Load pricing config, merging file config and overrides with defaults."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    path = config_file if config_file is not None else CONFIG_FILE
    if path and os.path.exists(path):
        try:
            with open(path, "r") as f:
                file_config = json.load(f)
            _deep_merge(config, file_config.get("pricing_rules", {}))
            log.info("Loaded pricing rules from %s", path)
        except (json.JSONDecodeError, IOError) as e:
            log.warning("Ignoring unreadable config %s: %s", path, e)
    if overrides:
        _deep_merge(config, overrides)
    return config


_CONFIG = None


def get_config() -> dict:
    """Cached process-wide config."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reload_config(overrides: Optional[dict] = None) -> dict:
    global _CONFIG
    _CONFIG = load_config(overrides)
    return _CONFIG


def resolve_config(config: Optional[dict]) -> dict:
    return config if config is not None else get_config()


def billing_multiplier(billing_cycle: str, config: Optional[dict] = None) -> int:
    config = resolve_config(config)
    if billing_cycle == BILLING_ANNUAL:
        return int(config["annual_billing_multiplier"])
    return 1
