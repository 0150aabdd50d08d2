"""
Shared pytest fixtures for the QuoteDesk test suite.

Engine fixtures pin the reference date and build configs explicitly so no
test depends on today's date or on a QUOTEDESK_CONFIG file.
"""
import base64
import os
import sys
from datetime import date

import pytest

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from quotedesk.core import config as config_mod
from quotedesk.core.cart import CartLine, CartState, QuoteConfig
from quotedesk.core.catalog import load_catalog


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Every test starts from DEFAULT_CONFIG with strict invariants."""
    monkeypatch.setattr(config_mod, "CONFIG_FILE", "")
    monkeypatch.setattr(config_mod, "_CONFIG", None)
    yield
    config_mod._CONFIG = None


@pytest.fixture
def config():
    """Default pricing rules, strict."""
    return config_mod.load_config({"strict_invariants": True})


@pytest.fixture
def flat_config():
    """Seasonal pricing off, so only volume discounts apply."""
    return config_mod.load_config({"strict_invariants": True,
                                   "seasonal_pricing_enabled": False})


@pytest.fixture
def lenient_config():
    return config_mod.load_config({"strict_invariants": False})


# ── Catalog / cart ────────────────────────────────────────────────────────────

@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def desktop(catalog):
    return catalog.get("SPX Desktop")


@pytest.fixture
def server(catalog):
    return catalog.get("SPX PS")


@pytest.fixture
def dr_service(catalog):
    return catalog.get("Disaster Recovery Service")


@pytest.fixture
def july():
    """Q3 reference date (Summer Sale, 15%)."""
    return date(2026, 7, 15)


@pytest.fixture
def sample_state(desktop, server):
    return CartState(
        lines=(CartLine(desktop, 10), CartLine(server, 3)),
        config=QuoteConfig(billing_cycle="monthly", service_charge=50.0),
    )


# ── Flask test client ─────────────────────────────────────────────────────────

def _basic_auth_header(user="rep", pw="s3cret"):
    creds = base64.b64encode(f"{user}:{pw}".encode()).decode()
    return {"Authorization": f"Basic {creds}"}


class AuthenticatedClient:
    """Wraps Flask test client to add Basic Auth headers to every request."""
    def __init__(self, client, headers):
        self._client = client
        self._headers = headers

    def get(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.get(*args, **kwargs)

    def post(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.post(*args, **kwargs)


@pytest.fixture
def app():
    """Flask app with fixed credentials and seasonal pricing off."""
    from app import create_app
    from quotedesk.core.auth import StaticCredentialAuthenticator

    application = create_app(
        config_overrides={"strict_invariants": True, "seasonal_pricing_enabled": False},
        authenticator=StaticCredentialAuthenticator("rep", "s3cret"),
        configure_logging=False,
    )
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Authenticated Flask test client (HTTP Basic Auth on every request)."""
    with app.test_client() as c:
        yield AuthenticatedClient(c, _basic_auth_header())


@pytest.fixture
def anon_client(app):
    """Unauthenticated test client."""
    with app.test_client() as c:
        yield c
