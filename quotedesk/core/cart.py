"""
Cart state and reducers.

CartState is an immutable snapshot of what the rep has selected. Each
reducer takes a state and returns a new one; nothing here mutates or
prices anything. dispatch() routes {"type": ...} actions so a stateless
HTTP client can replay edits.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Tuple

from quotedesk.core.catalog import UNSET, Catalog, Product, default_catalog, normalize_margin
from quotedesk.core.config import BILLING_CYCLES, BILLING_MONTHLY, BILLING_ANNUAL
from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES
from quotedesk.core.money import is_number

log = logging.getLogger("quotedesk.cart")


@dataclass(frozen=True)
class CustomerInfo:
    name: str = ""
    email: str = ""
    company: str = ""
    salutation: str = ""
    phone: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "company": self.company,
                "salutation": self.salutation, "phone": self.phone}


@dataclass(frozen=True)
class QuoteConfig:
    billing_cycle: str = BILLING_MONTHLY
    service_charge: float = 0.0
    waive_processing_fee: bool = False
    customer: CustomerInfo = field(default_factory=CustomerInfo)
    monthly_volume: float = 0.0
    total_spend: float = 0.0
    reference_date: Optional[date] = None

    def __post_init__(self):
        if self.billing_cycle not in BILLING_CYCLES:
            raise QuoteValidationError(
                f"{ERROR_MESSAGES['INVALID_BILLING_CYCLE']}, got {self.billing_cycle!r}")
        if not isinstance(self.waive_processing_fee, bool):
            raise QuoteValidationError(
                f"waive_processing_fee must be true or false, got {self.waive_processing_fee!r}")
        for name in ("service_charge", "monthly_volume", "total_spend"):
            value = getattr(self, name)
            if not is_number(value) or not math.isfinite(value) or value < 0:
                if name == "service_charge":
                    raise QuoteValidationError(ERROR_MESSAGES["INVALID_SERVICE_CHARGE"])
                raise QuoteValidationError(f"{name} must be a non-negative number, got {value!r}")

    @property
    def is_annual(self) -> bool:
        return self.billing_cycle == BILLING_ANNUAL

    def to_dict(self) -> dict:
        return {
            "billing_cycle": self.billing_cycle,
            "service_charge": self.service_charge,
            "waive_processing_fee": self.waive_processing_fee,
            "customer": self.customer.to_dict(),
            "monthly_volume": self.monthly_volume,
            "total_spend": self.total_spend,
            "reference_date": self.reference_date.isoformat() if self.reference_date else None,
        }


def _check_qty(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_QUANTITY']}, got {qty!r}")
    return qty


@dataclass(frozen=True)
class CartLine:
    product: Product
    qty: int = 1
    margin_override: object = None
    unit_cost_override: Optional[float] = None

    def __post_init__(self):
        _check_qty(self.qty)
        if self.unit_cost_override is not None:
            c = self.unit_cost_override
            if not is_number(c) or not math.isfinite(c) or c < 0:
                raise QuoteValidationError(f"Unit cost must be a non-negative number, got {c!r}")

    @property
    def name(self) -> str:
        return self.product.name

    def to_dict(self) -> dict:
        if self.margin_override is None:
            margin = None
        elif self.margin_override is UNSET:
            margin = "unset"
        else:
            margin = self.margin_override
        return {"product": self.product.name, "qty": self.qty,
                "margin": margin, "unit_cost": self.unit_cost_override}


@dataclass(frozen=True)
class CartState:
    lines: Tuple[CartLine, ...] = ()
    config: QuoteConfig = field(default_factory=QuoteConfig)

    def find(self, name: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.name == name:
                return line
        return None

    def to_dict(self) -> dict:
        return {"lines": [l.to_dict() for l in self.lines], "config": self.config.to_dict()}


# ─── Reducers ────────────────────────────────────────────────────────────────

def _replace_line(state: CartState, name: str, **changes) -> CartState:
    if state.find(name) is None:
        raise QuoteValidationError(f"{ERROR_MESSAGES['PRODUCT_NOT_FOUND']}: {name}")
    lines = tuple(replace(l, **changes) if l.name == name else l for l in state.lines)
    return replace(state, lines=lines)


def add_product(state: CartState, product: Product, qty: int = 1) -> CartState:
    """Add a product, or bump its quantity when it is already in the cart."""
    _check_qty(qty)
    existing = state.find(product.name)
    if existing is not None:
        return _replace_line(state, product.name, qty=existing.qty + qty)
    return replace(state, lines=state.lines + (CartLine(product, qty),))


def remove_product(state: CartState, name: str) -> CartState:
    if state.find(name) is None:
        raise QuoteValidationError(f"{ERROR_MESSAGES['PRODUCT_NOT_FOUND']}: {name}")
    return replace(state, lines=tuple(l for l in state.lines if l.name != name))


def set_quantity(state: CartState, name: str, qty: int) -> CartState:
    return _replace_line(state, name, qty=qty)


def set_margin(state: CartState, name: str, margin) -> CartState:
    """Override a line's margin. None/NaN/garbage becomes UNSET."""
    return _replace_line(state, name, margin_override=normalize_margin(margin))


def set_unit_cost(state: CartState, name: str, unit_cost: Optional[float]) -> CartState:
    return _replace_line(state, name, unit_cost_override=unit_cost)


def update_config(state: CartState, **changes) -> CartState:
    try:
        if isinstance(changes.get("customer"), dict):
            changes["customer"] = replace(state.config.customer, **changes["customer"])
        return replace(state, config=replace(state.config, **changes))
    except TypeError as e:
        raise QuoteValidationError(f"Unknown quote setting: {e}") from None


def reset_cart(state: Optional[CartState] = None) -> CartState:
    return CartState()


# ─── Serialization ───────────────────────────────────────────────────────────

def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise QuoteValidationError(f"Invalid reference date: {value!r}") from None


def config_from_dict(data: Optional[dict]) -> QuoteConfig:
    data = data or {}
    customer = CustomerInfo(**{k: v for k, v in (data.get("customer") or {}).items()
                               if k in CustomerInfo.__dataclass_fields__})
    return QuoteConfig(
        billing_cycle=data.get("billing_cycle", BILLING_MONTHLY),
        service_charge=data.get("service_charge", 0.0),
        waive_processing_fee=data.get("waive_processing_fee", False),
        customer=customer,
        monthly_volume=data.get("monthly_volume", 0.0),
        total_spend=data.get("total_spend", 0.0),
        reference_date=_parse_date(data.get("reference_date")),
    )


def line_from_dict(data: dict, catalog: Optional[Catalog] = None) -> CartLine:
    catalog = catalog if catalog is not None else default_catalog()
    product = catalog.get(data.get("product") or data.get("name") or "")
    margin = data.get("margin")
    return CartLine(
        product=product,
        qty=data.get("qty", 1),
        margin_override=UNSET if margin == "unset" else (
            None if margin is None else normalize_margin(margin)),
        unit_cost_override=data.get("unit_cost"),
    )


def cart_from_dict(data: Optional[dict], catalog: Optional[Catalog] = None) -> CartState:
    data = data or {}
    lines = tuple(line_from_dict(l, catalog) for l in data.get("lines", []))
    return CartState(lines=lines, config=config_from_dict(data.get("config")))


# ─── Dispatch ────────────────────────────────────────────────────────────────

def dispatch(state: CartState, action: dict, catalog: Optional[Catalog] = None) -> CartState:
    """Apply a {"type": ..., ...} action and return the new state."""
    catalog = catalog if catalog is not None else default_catalog()
    kind = action.get("type")
    log.debug("cart action %s", kind)
    if kind == "add_product":
        return add_product(state, catalog.get(action.get("product", "")), action.get("qty", 1))
    if kind == "remove_product":
        return remove_product(state, action.get("product", ""))
    if kind == "set_quantity":
        return set_quantity(state, action.get("product", ""), action.get("qty"))
    if kind == "set_margin":
        return set_margin(state, action.get("product", ""), action.get("margin"))
    if kind == "set_unit_cost":
        return set_unit_cost(state, action.get("product", ""), action.get("unit_cost"))
    if kind == "update_config":
        changes = dict(action.get("changes") or {})
        if "reference_date" in changes:
            changes["reference_date"] = _parse_date(changes["reference_date"])
        return update_config(state, **changes)
    if kind == "reset_cart":
        return reset_cart(state)
    raise QuoteValidationError(f"Unknown cart action: {kind!r}")
