"""Flask route tests for the QuoteDesk JSON API."""


def _cart(**config):
    return {"lines": [{"product": "SPX Desktop", "qty": 1}], "config": config}


class TestAuth:
    def test_health_is_open(self, anon_client):
        r = anon_client.get("/api/health")
        assert r.status_code == 200
        assert r.get_json()["ok"] is True

    def test_catalog_requires_auth(self, anon_client):
        assert anon_client.get("/api/catalog").status_code == 401

    def test_wrong_password(self, anon_client):
        import base64
        bad = base64.b64encode(b"rep:nope").decode()
        r = anon_client.get("/api/catalog", headers={"Authorization": f"Basic {bad}"})
        assert r.status_code == 401


class TestCatalogRoute:
    def test_lists_products(self, client):
        data = client.get("/api/catalog").get_json()
        assert data["ok"] is True
        names = [p["name"] for p in data["products"]]
        assert "SPX Desktop" in names
        assert "SaaS" in data["categories"]


class TestQuoteRoute:
    def test_single_desktop(self, client):
        r = client.post("/api/quote", json=_cart())
        assert r.status_code == 200
        data = r.get_json()
        assert data["quote"]["lines"][0]["unit_price"] == 7.94
        assert data["quote"]["lines"][0]["tax_amount"] == 1.03
        assert data["quote"]["final_total"] == 9.54
        assert any("Silver tier" in rec for rec in data["recommendations"])
        assert data["fee_report"]["current_fees"]["fee"] == 0.57

    def test_invalid_quantity(self, client):
        r = client.post("/api/quote", json={"lines": [{"product": "SPX Desktop", "qty": 0}]})
        assert r.status_code == 400
        body = r.get_json()
        assert body["ok"] is False
        assert "positive integer" in body["error"]

    def test_unknown_product(self, client):
        r = client.post("/api/quote", json={"lines": [{"product": "Floppy Backup", "qty": 1}]})
        assert r.status_code == 400
        assert "Selected product not found" in r.get_json()["error"]

    def test_non_json_body(self, client):
        r = client.post("/api/quote", data="hello", content_type="text/plain")
        assert r.status_code == 400


class TestRecommendationsRoute:
    def test_recommendations_and_optimization(self, client):
        r = client.post("/api/recommendations", json=_cart(service_charge=50))
        data = r.get_json()
        assert r.status_code == 200
        assert any("Professional Services" in rec for rec in data["recommendations"])
        assert isinstance(data["optimization"], list)


class TestFeesRoute:
    def test_threshold_waiver(self, client):
        data = client.post("/api/fees", json={"amount": 1200}).get_json()
        assert data["fee"]["fee"] == 0
        assert data["fee"]["reason"] == "Amount exceeds minimum threshold"
        assert "recommendations" in data["report"]

    def test_missing_amount(self, client):
        assert client.post("/api/fees", json={}).status_code == 400

    def test_string_flag_rejected(self, client):
        r = client.post("/api/fees", json={"amount": 100, "waive": "false"})
        assert r.status_code == 400
        assert "waive must be true or false" in r.get_json()["error"]

    def test_boolean_flag(self, client):
        data = client.post("/api/fees", json={"amount": 100, "waive": False}).get_json()
        assert data["fee"]["fee"] > 0

    def test_very_large_amount(self, client):
        r = client.post("/api/fees", json={"amount": 1e26})
        assert r.status_code == 200
        assert r.get_json()["fee"]["fee"] == 0


class TestCartRoute:
    def test_apply_actions(self, client):
        r = client.post("/api/cart", json={
            "state": {"lines": []},
            "actions": [{"type": "add_product", "product": "SPX VM", "qty": 2},
                        {"type": "set_quantity", "product": "SPX VM", "qty": 6}],
        })
        data = r.get_json()
        assert data["ok"] is True
        assert data["state"]["lines"] == [
            {"product": "SPX VM", "qty": 6, "margin": None, "unit_cost": None}]

    def test_add_existing_with_string_quantity(self, client):
        r = client.post("/api/cart", json={
            "state": _cart(),
            "action": {"type": "add_product", "product": "SPX Desktop", "qty": "3"},
        })
        assert r.status_code == 400
        assert r.get_json()["ok"] is False

    def test_quote_with_string_waive_flag(self, client):
        r = client.post("/api/quote", json=_cart(waive_processing_fee="false"))
        assert r.status_code == 400

    def test_single_action(self, client):
        r = client.post("/api/cart", json={"state": _cart(), "action": {"type": "reset_cart"}})
        assert r.get_json()["state"]["lines"] == []


class TestDocumentRoute:
    def test_document(self, client):
        payload = _cart(customer={"name": "Jane Doe"})
        payload["quote_number"] = "QT20269999"
        data = client.post("/api/document", json=payload).get_json()
        assert data["document"]["quote_number"] == "QT20269999"
        assert data["document"]["subject"].startswith("[QT20269999] ExcelyTech Quote - Jane Doe")
        assert "<table>" in data["email_html"]
