"""Currency rounding used for every monetary output."""
import math
from decimal import Decimal, ROUND_HALF_UP, localcontext

from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES

CENT = Decimal("0.01")


def is_number(value) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def format_currency(amount) -> float:
    """
    Round a monetary amount to cents, half away from zero.

    Goes through the decimal string of the float so that 1.005 rounds to
    1.01 rather than the binary-float 1.00.

    Raises:
        QuoteValidationError: amount is not a number or is NaN/infinite.
    """
    if not is_number(amount):
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_AMOUNT']}: {amount!r}")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_AMOUNT']}: {amount!r}")
    if isinstance(amount, Decimal) and not amount.is_finite():
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_AMOUNT']}: {amount!r}")
    value = Decimal(str(amount))
    # default 28-digit context overflows above ~1e26
    with localcontext() as ctx:
        ctx.prec = max(28, value.adjusted() + 3)
        value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    result = float(value)
    if not math.isfinite(result):
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_AMOUNT']}: {amount!r}")
    return result + 0.0


def require_finite(value, field: str, minimum=None) -> float:
    """Validate a numeric input and return it as float."""
    if not is_number(value) or not math.isfinite(float(value)):
        raise QuoteValidationError(f"{field} must be a finite number, got {value!r}")
    value = float(value)
    if minimum is not None and value < minimum:
        raise QuoteValidationError(f"{field} must be >= {minimum}, got {value}")
    return value
