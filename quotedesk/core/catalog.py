"""
Product Catalog — tiered backup products and flat-rate services.

Products come in two shapes, decided once at ingestion:
  StandardProduct: quantity tiers, each with unit cost and margin
  FlatRateProduct: a single flat cost plus tax (home-grown services)

Raw catalog records are JSON-like dicts and may use either the camelCase
keys of the legacy catalog export (pricingTiers, minQty, isHomeGrown) or
snake_case.
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES, check_invariant

log = logging.getLogger("quotedesk.catalog")

PRICE_TOLERANCE = 0.005


class _Unset:
    """Margin that was never set or could not be parsed."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()


def normalize_margin(value) -> Union[float, _Unset]:
    """Map a raw margin to a float fraction, or UNSET when missing/NaN/non-numeric."""
    if value is None or value is UNSET or isinstance(value, bool):
        return UNSET
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return UNSET
    if not isinstance(value, (int, float)):
        return UNSET
    value = float(value)
    if not math.isfinite(value):
        return UNSET
    if value < 0:
        raise QuoteValidationError(f"Margin must be non-negative, got {value}")
    return value


def margin_value(margin) -> float:
    return 0.0 if margin is UNSET else float(margin)


# ─── Models ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Tier:
    min_qty: int
    max_qty: Optional[int]
    unit_cost: float
    margin: Union[float, _Unset]
    recommended_price: float

    def contains(self, qty: int) -> bool:
        if qty < self.min_qty:
            return False
        return self.max_qty is None or qty <= self.max_qty

    def with_margin(self, margin) -> "Tier":
        margin = normalize_margin(margin)
        return replace(self, margin=margin,
                       recommended_price=self.unit_cost * (1 + margin_value(margin)))

    def to_dict(self) -> dict:
        return {
            "min_qty": self.min_qty,
            "max_qty": self.max_qty,
            "unit_cost": self.unit_cost,
            "margin": None if self.margin is UNSET else self.margin,
            "recommended_price": round(self.recommended_price, 2),
        }


@dataclass(frozen=True)
class StandardProduct:
    name: str
    description: str
    license: str
    category: str
    tiers: Tuple[Tier, ...]

    is_home_grown = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "license": self.license,
            "category": self.category,
            "is_home_grown": False,
            "tiers": [t.to_dict() for t in self.tiers],
        }


@dataclass(frozen=True)
class FlatRateProduct:
    name: str
    description: str
    license: str
    category: str
    flat_cost: float
    tax_inclusive: bool = False

    is_home_grown = True

    @property
    def tiers(self) -> Tuple[Tier, ...]:
        return (Tier(1, None, self.flat_cost, 0.0, self.flat_cost),)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "license": self.license,
            "category": self.category,
            "is_home_grown": True,
            "flat_cost": self.flat_cost,
            "tax_inclusive": self.tax_inclusive,
        }


Product = Union[StandardProduct, FlatRateProduct]


# ─── Ingestion ───────────────────────────────────────────────────────────────

def _pick(record: dict, *keys, default=None):
    for k in keys:
        if k in record and record[k] is not None:
            return record[k]
    return default


def _cost(value, product_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise QuoteValidationError(f"{product_name}: unit cost must be a finite number, got {value!r}")
    if value < 0:
        raise QuoteValidationError(f"{product_name}: unit cost must be non-negative, got {value}")
    return float(value)


def _max_qty(value) -> Optional[int]:
    if value is None or value == "unlimited":
        return None
    if isinstance(value, float) and math.isinf(value):
        return None
    return int(value)


def ingest_tier(raw: dict, product_name: str, config: Optional[dict] = None) -> Tier:
    min_qty = int(_pick(raw, "min_qty", "minQty", default=1))
    max_qty = _max_qty(_pick(raw, "max_qty", "maxQty"))
    if min_qty < 1:
        raise QuoteValidationError(f"{product_name}: tier min_qty must be >= 1, got {min_qty}")
    if max_qty is not None and max_qty < min_qty:
        raise QuoteValidationError(
            f"{product_name}: tier min_qty {min_qty} exceeds max_qty {max_qty}")
    unit_cost = _cost(_pick(raw, "unit_cost", "unitCost"), product_name)
    margin = normalize_margin(_pick(raw, "margin"))
    derived = unit_cost * (1 + margin_value(margin))
    stored = _pick(raw, "recommended_price", "recommendedPrice")
    if stored is not None and margin is not UNSET:
        ok = check_invariant(
            abs(float(stored) - derived) <= PRICE_TOLERANCE,
            f"{product_name} tier {min_qty}: recommended price {stored} != "
            f"unit cost x (1 + margin) = {derived:.4f}",
            config)
        if not ok:
            log.warning("%s tier %d: using derived price %.4f", product_name, min_qty, derived)
    return Tier(min_qty, max_qty, unit_cost, margin, derived)


def ingest_product(record: dict, config: Optional[dict] = None) -> Product:
    """Validate a raw catalog record and resolve it into a product variant."""
    name = (record.get("name") or "").strip()
    if not name:
        raise QuoteValidationError("Product definition is missing a name")
    description = record.get("description", "")
    license_ = record.get("license", "")
    category = record.get("category", "")

    if _pick(record, "is_home_grown", "isHomeGrown", default=False):
        flat = _pick(record, "flat_cost", "flatCost", "unit_cost", "unitCost")
        if flat is None:
            tiers = _pick(record, "pricing_tiers", "pricingTiers", "pricingSlabs", default=[])
            flat = _pick(tiers[0], "unit_cost", "unitCost") if tiers else None
        return FlatRateProduct(
            name=name, description=description, license=license_, category=category,
            flat_cost=_cost(flat, name),
            tax_inclusive=bool(_pick(record, "tax_inclusive", "taxInclusive", default=False)),
        )

    raw_tiers = _pick(record, "pricing_tiers", "pricingTiers", "pricingSlabs", default=[])
    if not raw_tiers:
        raise QuoteValidationError(f"{name}: product has no pricing tiers")
    tiers = tuple(sorted((ingest_tier(t, name, config) for t in raw_tiers),
                         key=lambda t: t.min_qty))
    _warn_on_gaps(name, tiers)
    return StandardProduct(name=name, description=description, license=license_,
                           category=category, tiers=tiers)


def _warn_on_gaps(name: str, tiers: Tuple[Tier, ...]) -> None:
    if tiers[0].min_qty > 1:
        log.warning("Catalog: %s tiers start at %d, not 1", name, tiers[0].min_qty)
    for prev, nxt in zip(tiers, tiers[1:]):
        if prev.max_qty is None or nxt.min_qty != prev.max_qty + 1:
            log.warning("Catalog: %s tier gap/overlap between %s and %d",
                        name, prev.max_qty, nxt.min_qty)


# ─── Seed catalog ────────────────────────────────────────────────────────────

def _tiers(*costs, margin=0.35):
    bounds = [(1, 25), (26, 50), (51, 100), (101, 150), (151, None)]
    return [{"min_qty": lo, "max_qty": hi, "unit_cost": c, "margin": margin,
             "recommended_price": c * (1 + margin)}
            for (lo, hi), c in zip(bounds, costs)]


PRODUCTS = [
    {"name": "SPX Desktop", "description": "Backup solution for desktops",
     "license": "Per Desktop License", "category": "Desktop",
     "pricing_tiers": _tiers(5.88, 5.66, 5.35, 4.99, 4.66)},
    {"name": "SPX SBS", "description": "Backup solution for small business servers",
     "license": "Per Server License", "category": "Server",
     "pricing_tiers": _tiers(24.05, 22.79, 21.13, 19.26, 17.72)},
    {"name": "SPX VM", "description": "Backup solution for virtual machines",
     "license": "Per VM License", "category": "Virtual Server",
     "pricing_tiers": _tiers(30.00, 30.00, 30.00, 30.00, 27.76)},
    {"name": "SPX PS", "description": "Backup solution for physical servers",
     "license": "Per Server License", "category": "Server",
     "pricing_tiers": _tiers(43.22, 40.14, 36.10, 31.51, 27.76)},
    {"name": "SPX Cloud 365", "description": "Cloud backup for SaaS mailboxes and files",
     "license": "Per User License", "category": "SaaS",
     "pricing_tiers": _tiers(3.10, 2.95, 2.80, 2.60, 2.40)},
    {"name": "Disaster Recovery Service", "description": "Managed disaster recovery testing and failover",
     "license": "Per Site", "category": "Service",
     "is_home_grown": True, "flat_cost": 150.00},
]


class Catalog:
    """Ingested products, looked up by name."""

    def __init__(self, products):
        self._products = {}
        for p in products:
            if p.name in self._products:
                raise QuoteValidationError(f"Duplicate product name in catalog: {p.name}")
            self._products[p.name] = p

    def __iter__(self):
        return iter(self._products.values())

    def __len__(self):
        return len(self._products)

    def __contains__(self, name):
        return name in self._products

    def get(self, name: str) -> Product:
        try:
            return self._products[name]
        except KeyError:
            raise QuoteValidationError(f"{ERROR_MESSAGES['PRODUCT_NOT_FOUND']}: {name}") from None

    def by_category(self, category: str) -> list:
        return [p for p in self._products.values() if p.category == category]

    def categories(self) -> list:
        seen = []
        for p in self._products.values():
            if p.category and p.category not in seen:
                seen.append(p.category)
        return seen

    def to_dict(self) -> dict:
        return {"products": [p.to_dict() for p in self._products.values()],
                "categories": self.categories()}


def load_catalog(records=None, config: Optional[dict] = None) -> Catalog:
    """Build a Catalog from raw records (defaults to the seed PRODUCTS)."""
    records = PRODUCTS if records is None else records
    catalog = Catalog(ingest_product(r, config) for r in records)
    log.debug("Catalog loaded: %d products", len(catalog))
    return catalog


_DEFAULT_CATALOG = None


def default_catalog() -> Catalog:
    global _DEFAULT_CATALOG
    if _DEFAULT_CATALOG is None:
        _DEFAULT_CATALOG = load_catalog()
    return _DEFAULT_CATALOG
