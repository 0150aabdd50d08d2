"""
Error types shared by the pricing engine.

Three classes of problem, handled differently:
  - QuoteValidationError: bad caller input. Raised, never recovered.
  - catalog warnings: bad catalog data with a safe default. Logged and
    reported as a string flag on the result.
  - ConsistencyError: a broken internal invariant. Raised when
    strict_invariants is on, otherwise logged and the value is clamped.
"""
import logging
from typing import Optional

log = logging.getLogger("quotedesk.pricing")

ERROR_MESSAGES = {
    "INVALID_QUANTITY": "Quantity must be a positive integer",
    "INVALID_SERVICE_CHARGE": "Service charge must be a non-negative number",
    "INVALID_CUSTOMER_NAME": "Customer name is required",
    "PRODUCT_NOT_FOUND": "Selected product not found",
    "INVALID_BILLING_CYCLE": "Billing cycle must be 'monthly' or 'annual'",
    "INVALID_AMOUNT": "Amount must be a finite number",
}


class QuoteValidationError(ValueError):
    """Invalid input to a pricing operation."""


class ConsistencyError(AssertionError):
    """An internal pricing invariant does not hold."""


def check_invariant(condition: bool, message: str, config: Optional[dict] = None) -> bool:
    """Return True when condition holds. Otherwise raise or log per config."""
    if condition:
        return True
    strict = True
    if config is not None:
        strict = bool(config.get("strict_invariants", True))
    if strict:
        raise ConsistencyError(message)
    log.error("Invariant violated: %s", message)
    return False


def catalog_warning(flags: Optional[list], flag: str, message: str, *args) -> None:
    log.warning(message, *args)
    if flags is not None and flag not in flags:
        flags.append(flag)
