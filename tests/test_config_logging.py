"""Tests for config loading, invariant handling, auth and log formatting."""
import json
import logging

import pytest

from quotedesk.core import config as config_mod
from quotedesk.core.auth import Authenticator, StaticCredentialAuthenticator
from quotedesk.core.config import billing_multiplier, get_config, load_config, reload_config
from quotedesk.core.errors import ConsistencyError, check_invariant
from quotedesk.core.logging_config import HumanFormatter, JSONFormatter, setup_logging


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config()
        assert cfg["tax_rate"] == 0.13
        assert cfg["processing"]["min_amount_for_waiver"] == 1000.0

    def test_overrides_deep_merge(self):
        cfg = load_config({"processing": {"annual_commitment_waiver": False}})
        assert cfg["processing"]["annual_commitment_waiver"] is False
        assert len(cfg["processing"]["fee_tiers"]) == 5

    def test_defaults_not_mutated(self):
        cfg = load_config()
        cfg["volume_discounts"].append({"min_qty": 1, "discount": 0.99})
        assert len(load_config()["volume_discounts"]) == 4

    def test_file_pricing_rules(self, tmp_path):
        path = tmp_path / "quotedesk.json"
        path.write_text(json.dumps({"pricing_rules": {"tax_rate": 0.05}}))
        assert load_config(config_file=str(path))["tax_rate"] == 0.05

    def test_unreadable_file_ignored(self, tmp_path, caplog):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="quotedesk.config"):
            cfg = load_config(config_file=str(path))
        assert cfg["tax_rate"] == 0.13
        assert "Ignoring unreadable config" in caplog.text

    def test_cached(self):
        assert get_config() is get_config()
        fresh = reload_config({"tax_rate": 0.2})
        assert get_config() is fresh
        assert fresh["tax_rate"] == 0.2

    def test_billing_multiplier(self):
        assert billing_multiplier("annual") == 12
        assert billing_multiplier("monthly") == 1


class TestCheckInvariant:
    def test_passes(self):
        assert check_invariant(True, "ok", {"strict_invariants": True})

    def test_strict_raises(self):
        with pytest.raises(ConsistencyError, match="broken"):
            check_invariant(False, "broken", {"strict_invariants": True})

    def test_lenient_logs(self, caplog):
        with caplog.at_level(logging.ERROR, logger="quotedesk.pricing"):
            assert check_invariant(False, "broken", {"strict_invariants": False}) is False
        assert "Invariant violated: broken" in caplog.text


class TestAuthenticator:
    def test_static_credentials(self):
        auth = StaticCredentialAuthenticator("rep", "pw")
        assert auth.authenticate("rep", "pw")
        assert not auth.authenticate("rep", "PW")
        assert not auth.authenticate("", "")

    def test_env_defaults(self, monkeypatch):
        monkeypatch.setenv("QUOTEDESK_USER", "envrep")
        monkeypatch.setenv("QUOTEDESK_PASS", "envpw")
        assert StaticCredentialAuthenticator().authenticate("envrep", "envpw")

    def test_interface(self):
        with pytest.raises(NotImplementedError):
            Authenticator().authenticate("a", "b")


class TestFormatters:
    def _record(self, **extra):
        record = logging.LogRecord("quotedesk.pricing", logging.WARNING, __file__, 10,
                                   "tier %s", ("fallback",), None)
        for k, v in extra.items():
            setattr(record, k, v)
        return record

    def test_json_formatter(self):
        entry = json.loads(JSONFormatter().format(self._record(route="/api/quote", total=9.54)))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "quotedesk.pricing"
        assert entry["msg"] == "tier fallback"
        assert entry["route"] == "/api/quote"
        assert entry["total"] == 9.54
        assert entry["ts"].endswith("Z")

    def test_json_formatter_only_known_extras(self):
        record = self._record(quote_number="QT20261234", customer="Jane Doe", user="rep")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["quote_number"] == "QT20261234"
        assert entry["customer"] == "Jane Doe"
        assert "user" not in entry

    def test_human_formatter(self):
        line = HumanFormatter().format(self._record())
        assert "[W] quotedesk.pricing: tier fallback" in line


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for h in root.handlers:
            if h not in handlers:
                h.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_console_only_by_default(self):
        setup_logging(level="DEBUG", json_logs=True, log_dir="")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_file_handler(self, tmp_path):
        setup_logging(level="INFO", json_logs=False, log_dir=str(tmp_path / "logs"))
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert (tmp_path / "logs" / "quotedesk.log").exists()
