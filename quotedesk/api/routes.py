"""
QuoteDesk JSON API.

Stateless wrappers around the pricing engine: the client sends the whole
cart on every call and gets the derived quote back. Nothing is stored
server-side.
"""
import functools
import logging
import time

from flask import Blueprint, Response, current_app, jsonify, request

from quotedesk.core.auth import StaticCredentialAuthenticator
from quotedesk.core.cart import cart_from_dict, dispatch
from quotedesk.core.catalog import default_catalog
from quotedesk.core.errors import QuoteValidationError
from quotedesk.core.money import require_finite
from quotedesk.forms.quote_document import document_for_cart, render_email_body
from quotedesk.pricing.fee_report import generate_fee_report
from quotedesk.pricing.fees import compute_processing_fee
from quotedesk.pricing.quote import compute_quote, quote_summary
from quotedesk.pricing.recommendations import get_recommendations
from quotedesk.pricing.upsell import get_profit_optimization_recommendations

log = logging.getLogger("quotedesk.api")

bp = Blueprint("quotedesk", __name__, url_prefix="/api")


# ═══════════════════════════════════════════════════════════════════════
# Password Protection
# ═══════════════════════════════════════════════════════════════════════

def check_auth(username, password):
    authenticator = current_app.config.get("AUTHENTICATOR")
    if authenticator is None:
        authenticator = StaticCredentialAuthenticator()
    return authenticator.authenticate(username, password)


def auth_required(f):
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        auth = request.authorization
        if not auth or not check_auth(auth.username, auth.password):
            return Response(
                "QuoteDesk: Login Required",
                401, {"WWW-Authenticate": 'Basic realm="QuoteDesk"'})
        return f(*args, **kwargs)
    return decorated


# ═══════════════════════════════════════════════════════════════════════
# Request logging and errors
# ═══════════════════════════════════════════════════════════════════════

@bp.before_app_request
def _log_request_start():
    request._start_time = time.time()


@bp.after_app_request
def _log_request_end(response):
    if hasattr(request, "_start_time"):
        duration_ms = round((time.time() - request._start_time) * 1000, 1)
        if request.path != "/api/health":
            log.info("%s %s -> %d (%.0fms)",
                     request.method, request.path, response.status_code, duration_ms,
                     extra={"route": request.path, "method": request.method,
                            "status": response.status_code, "duration_ms": duration_ms})
    return response


@bp.errorhandler(QuoteValidationError)
def _validation_error(e):
    log.info("Rejected %s: %s", request.path, e)
    return jsonify({"ok": False, "error": str(e)}), 400


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise QuoteValidationError("Request body must be a JSON object")
    return data


def _flag(data: dict, key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise QuoteValidationError(f"{key} must be true or false, got {value!r}")
    return value


def _engine_config():
    return current_app.config.get("PRICING_CONFIG")


# ═══════════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/health")
def api_health():
    return jsonify({"ok": True, "status": "healthy", "products": len(default_catalog())})


@bp.route("/catalog")
@auth_required
def api_catalog():
    return jsonify({"ok": True, **default_catalog().to_dict()})


@bp.route("/quote", methods=["POST"])
@auth_required
def api_quote():
    """Price a cart: {"lines": [...], "config": {...}} -> quote, recommendations, fee report."""
    state = cart_from_dict(_payload())
    result = quote_summary(state, config=_engine_config())
    return jsonify({"ok": True, **result})


@bp.route("/recommendations", methods=["POST"])
@auth_required
def api_recommendations():
    data = _payload()
    state = cart_from_dict(data)
    config = _engine_config()
    qc = state.config
    quote = compute_quote(state, config=config)
    recs = get_recommendations(
        state.lines, qc.service_charge, qc.billing_cycle, quote.profit_before_tax,
        total_spend=qc.total_spend, monthly_volume=qc.monthly_volume,
        reference_date=qc.reference_date, config=config)
    optimization = get_profit_optimization_recommendations(
        state.lines, data.get("commitment_level") or qc.billing_cycle, qc.total_spend, config)
    return jsonify({"ok": True, "recommendations": recs, "optimization": optimization})


@bp.route("/fees", methods=["POST"])
@auth_required
def api_fees():
    """Processing fee and savings report for a bare amount."""
    data = _payload()
    config = _engine_config()
    amount = require_finite(data.get("amount"), "amount", minimum=0)
    monthly_volume = require_finite(data.get("monthly_volume", 0), "monthly_volume", minimum=0)
    total_spend = require_finite(data.get("total_spend", 0), "total_spend", minimum=0)
    fee = compute_processing_fee(
        amount, is_annual=_flag(data, "is_annual"), waive=_flag(data, "waive"),
        monthly_volume=monthly_volume, total_spend=total_spend, config=config)
    report = generate_fee_report(fee, monthly_volume, total_spend, config)
    return jsonify({"ok": True, "fee": fee.to_dict(), "report": report})


@bp.route("/cart", methods=["POST"])
@auth_required
def api_cart():
    """Apply one or more cart actions: {"state": {...}, "actions": [{...}]}."""
    data = _payload()
    state = cart_from_dict(data.get("state"))
    actions = data.get("actions")
    if actions is None:
        actions = [data.get("action") or {}]
    for action in actions:
        state = dispatch(state, action)
    return jsonify({"ok": True, "state": state.to_dict()})


@bp.route("/document", methods=["POST"])
@auth_required
def api_document():
    """Quote document payload plus the email HTML body."""
    data = _payload()
    state = cart_from_dict(data)
    doc = document_for_cart(state, quote_number=data.get("quote_number"),
                            config=_engine_config())
    return jsonify({"ok": True, "document": doc, "email_html": render_email_body(doc)})
