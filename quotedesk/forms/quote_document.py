"""
Quote document payload: everything a PDF or email renderer needs to lay
out a quote: quote number, email subject, line rows, totals, terms, footer
and the QR code payload. Rendering itself happens elsewhere.
"""
import html
import json
import logging
import random
from datetime import datetime
from typing import Optional

from quotedesk.core.cart import CartState, CustomerInfo, QuoteConfig
from quotedesk.core.config import resolve_config
from quotedesk.pricing.loyalty import resolve_commitment
from quotedesk.pricing.quote import QuoteResult, compute_quote
from quotedesk.pricing.upsell import get_package_name

log = logging.getLogger("quotedesk.forms")


def generate_quote_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None,
                          config: Optional[dict] = None) -> str:
    """QT<year><4 random digits>, e.g. QT20261234."""
    config = resolve_config(config)
    now = now or datetime.now()
    rng = rng or random
    return f"{config['company']['quote_prefix']}{now.year}{rng.randint(1000, 9999)}"


def _display_date(now: datetime) -> str:
    return f"{now.strftime('%b')} {now.day}, {now.year}"


def generate_email_subject(customer_name: str = "", commitment_level=None,
                           quote_number: Optional[str] = None,
                           now: Optional[datetime] = None,
                           config: Optional[dict] = None) -> str:
    config = resolve_config(config)
    now = now or datetime.now()
    quote_number = quote_number or generate_quote_number(now, config=config)
    plan = resolve_commitment(commitment_level, config).name if commitment_level else "Standard"
    name = customer_name.strip() if customer_name else ""
    return (f"[{quote_number}] {config['company']['name']} Quote - {name or 'Customer'} | "
            f"{plan} Plan | {_display_date(now)}")


def build_qr_payload(customer: CustomerInfo, company: str, total: float,
                     now: Optional[datetime] = None) -> str:
    """Compact JSON encoded into the quote's QR code."""
    now = now or datetime.now()
    return json.dumps({
        "customer": customer.name,
        "company": company,
        "total": round(total, 2),
        "date": now.date().isoformat(),
    }, sort_keys=True)


def build_quote_document(quote: QuoteResult, quote_config: QuoteConfig,
                         quote_number: Optional[str] = None,
                         now: Optional[datetime] = None,
                         config: Optional[dict] = None) -> dict:
    config = resolve_config(config)
    now = now or datetime.now()
    quote_number = quote_number or generate_quote_number(now, config=config)
    company = config["company"]
    customer = quote_config.customer

    rows = [{
        "name": l.name,
        "license": l.license,
        "qty": l.qty,
        "unit_price": l.unit_price,
        "total": l.subtotal,
    } for l in quote.lines]

    doc = {
        "quote_number": quote_number,
        "date": _display_date(now),
        "subject": generate_email_subject(customer.name, quote_config.billing_cycle,
                                          quote_number, now, config),
        "package_name": get_package_name(quote.lines),
        "company": dict(company),
        "customer": customer.to_dict(),
        "billing_cycle": quote.billing_cycle,
        "rows": rows,
        "totals": {
            "subtotal": quote.subtotal,
            "service_charge": quote.service_charge,
            "tax": quote.tax,
            "processing_fee": quote.processing_fee,
            "final_total": quote.final_total,
        },
        "terms": list(config["quote_terms"]),
        "footer": [f"{company['name']} - {company['tagline']}", company["website"]],
        "qr_payload": build_qr_payload(customer, company["name"], quote.final_total, now),
    }
    log.info("Quote document %s built: %d rows, total $%.2f",
             quote_number, len(rows), quote.final_total,
             extra={"quote_number": quote_number, "customer": customer.name,
                    "total": quote.final_total, "lines": len(rows)})
    return doc


def document_for_cart(state: CartState, quote_number: Optional[str] = None,
                      now: Optional[datetime] = None, config: Optional[dict] = None) -> dict:
    config = resolve_config(config)
    return build_quote_document(compute_quote(state, config=config), state.config,
                                quote_number, now, config)


def render_email_body(doc: dict) -> str:
    """HTML fragment with the same content as the PDF, for the quote email."""
    e = html.escape
    customer = doc["customer"]
    greeting = " ".join(p for p in (customer.get("salutation"), customer.get("name")) if p)
    out = [f"<p>Dear {e(greeting or 'Customer')},</p>",
           f"<p>Please find your {e(doc['package_name'])} quote "
           f"<strong>{e(doc['quote_number'])}</strong> dated {e(doc['date'])} below.</p>",
           "<table>",
           "<tr><th>Product</th><th>License</th><th>Qty</th><th>Unit Price</th><th>Total</th></tr>"]
    for r in doc["rows"]:
        out.append(f"<tr><td>{e(r['name'])}</td><td>{e(r['license'])}</td><td>{r['qty']}</td>"
                   f"<td>${r['unit_price']:,.2f}</td><td>${r['total']:,.2f}</td></tr>")
    out.append("</table>")
    t = doc["totals"]
    out.append("<table>")
    for label, key in (("Subtotal", "subtotal"), ("Professional Services & Support", "service_charge"),
                       ("Tax", "tax"), ("Processing Fee", "processing_fee"),
                       ("Total", "final_total")):
        out.append(f"<tr><td>{e(label)}</td><td>${t[key]:,.2f}</td></tr>")
    out.append("</table>")
    out.append("<ul>" + "".join(f"<li>{e(term)}</li>" for term in doc["terms"]) + "</ul>")
    out.append("<p>" + "<br>".join(e(f) for f in doc["footer"]) + "</p>")
    return "\n".join(out)
