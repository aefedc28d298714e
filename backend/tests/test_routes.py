import pytest


class TestReadRoutes:

    def test_reads_require_a_token(self, client):
        assert client.get("/cards").status_code == 401
        assert client.get("/merchants").status_code == 401
        assert client.get("/transactions").status_code == 401

    def test_list_cards(self, client, auth_headers):
        res = client.get("/cards", headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json() == [
            {"id": "c1", "cardholder": "Alice", "initials": "AL"},
            {"id": "c2", "cardholder": "Bob", "initials": "BO"},
        ]

    def test_card_transactions_unknown_card(self, client, auth_headers):
        res = client.get("/cards/nope/transactions", headers=auth_headers)
        assert res.status_code == 404
        assert res.get_json() == {"error": "card does not exist", "retryable": False}

    def test_invalid_since_is_a_validation_error(self, client, auth_headers):
        res = client.get("/transactions?since=soon", headers=auth_headers)
        assert res.status_code == 400

    def test_health(self, client, store):
        assert client.get("/health").get_json() == {"status": "ok", "store": True}
        store.available = False
        assert client.get("/health").status_code == 503


class TestRecordPurchase:

    def _post(self, client, headers, **body):
        return client.post("/transactions", json=body, headers=headers)

    def test_requires_authorization(self, client, store):
        res = self._post(client, {}, merchantName="Grocery", amount=10, cardId="c1")
        assert res.status_code == 401
        assert res.get_json()["retryable"] is False
        assert store.snapshot_counts()["transactions"] == 0

    def test_rejects_bad_token(self, client, store):
        res = self._post(client, {"Authorization": "Bearer not-a-jwt"},
                         merchantName="Grocery", amount=10, cardId="c1")
        assert res.status_code == 401
        assert store.snapshot_counts()["transactions"] == 0

    def test_creates_rounded_transaction(self, client, auth_headers):
        res = self._post(client, auth_headers, merchantName=" Coffee  Shop", amount=19.995, cardId="c1")
        assert res.status_code == 201
        body = res.get_json()
        assert body["transaction"]["amount"] == 20.0
        assert body["transaction"]["merchantName"] == "Coffee Shop"
        assert body["transaction"]["archived"] is False
        assert body["settlement"]["settled"] is False

    def test_validation_error_body(self, client, auth_headers, store):
        res = self._post(client, auth_headers, merchantName="   ", amount=10, cardId="c1")
        assert res.status_code == 400
        assert res.get_json() == {"error": "missing merchant", "retryable": False}
        assert store.commits == 0

    @pytest.mark.parametrize("body", [["Grocery", 10, "c1"], "Grocery", 10])
    def test_body_must_be_an_object(self, client, auth_headers, store, body):
        res = client.post("/transactions", json=body, headers=auth_headers)
        assert res.status_code == 400
        assert res.get_json() == {"error": "request body must be a JSON object", "retryable": False}
        assert store.commits == 0

    def test_authorization_is_checked_before_the_body(self, client):
        res = client.post("/transactions", json=["Grocery", 10, "c1"])
        assert res.status_code == 401

    def test_missing_body_reports_first_missing_field(self, client, auth_headers):
        res = client.post("/transactions", headers=auth_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "missing merchant"

    def test_unknown_card(self, client, auth_headers, store):
        res = self._post(client, auth_headers, merchantName="Grocery", amount=10, cardId="ghost")
        assert res.status_code == 404
        assert res.get_json()["error"] == "card does not exist"
        assert store.list_merchants() == []

    def test_conflict_is_retryable(self, client, auth_headers, store):
        store.fail_next_commits(5)
        res = self._post(client, auth_headers, merchantName="Grocery", amount=10, cardId="c1")
        assert res.status_code == 409
        assert res.get_json() == {"error": "The ledger is busy, please retry", "retryable": True}
        assert store.snapshot_counts()["transactions"] == 0

    def test_store_outage_is_reported_generically(self, client, auth_headers, store):
        store.available = False
        res = self._post(client, auth_headers, merchantName="Grocery", amount=10, cardId="c1")
        assert res.status_code == 503
        assert res.get_json() == {"error": "The ledger store is unavailable", "retryable": False}

    def test_settlement_scenario(self, client, auth_headers):
        self._post(client, auth_headers, merchantName="Grocery", amount=10, cardId="c1")
        res = self._post(client, auth_headers, merchantName="Grocery", amount="10.00", cardId="c2")
        assert res.get_json()["settlement"]["settled"] is True
        assert res.get_json()["settlement"]["archived"] == 2

        open_only = client.get("/transactions?open=true", headers=auth_headers).get_json()
        assert [group["transactions"] for group in open_only] == [[], []]

        everything = client.get("/transactions", headers=auth_headers).get_json()
        assert [group["cardId"] for group in everything] == ["c1", "c2"]
        assert all(t["archived"] for group in everything for t in group["transactions"])

        merchants = client.get("/merchants", headers=auth_headers).get_json()
        assert [m["name"] for m in merchants] == ["Grocery"]

    def test_card_listing_filters(self, client, auth_headers):
        self._post(client, auth_headers, merchantName="Grocery", amount=4, cardId="c1")
        res = client.get("/cards/c1/transactions?open=true&since=2000-01-01", headers=auth_headers)
        body = res.get_json()
        assert body["cardId"] == "c1"
        assert body["cardholder"] == "Alice"
        assert [t["amount"] for t in body["transactions"]] == [4.0]

        future = client.get("/cards/c1/transactions?since=2999-01-01", headers=auth_headers).get_json()
        assert future["transactions"] == []

    def test_evaluate_route(self, client, auth_headers):
        res = client.post("/settlements/evaluate", headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json()["settled"] is False
        assert client.post("/settlements/evaluate").status_code == 401
