"""Tests for API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from payfastacy.api import create_app
from payfastacy.config import Settings
from payfastacy.reconciliation.gateway import SePayClient

API_KEY = "test_app_key_12345"


def sepay_handler(request: httpx.Request) -> httpx.Response:
    txn_id = request.url.path.rsplit("/", 1)[-1]
    if request.headers.get("authorization") != "Bearer sepay_test_key":
        return httpx.Response(401)
    if txn_id == "missing":
        return httpx.Response(404)
    if txn_id == "failed":
        return httpx.Response(200, json={"status": 200, "error": "Not allowed", "messages": {"success": False}})
    return httpx.Response(
        200,
        json={
            "status": 200,
            "error": None,
            "messages": {"success": True},
            "transaction": {"id": txn_id, "amount_in": "50000.00"},
        },
    )


@pytest.fixture
def app_settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        app_key=API_KEY,
        sepay_api_key="sepay_test_key",
    )


@pytest.fixture
def client(app_settings):
    """Create test client with a fresh in-memory database."""
    gateway = SePayClient.from_settings(app_settings, transport=httpx.MockTransport(sepay_handler))
    app = create_app(settings=app_settings, gateway=gateway)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Return authenticated headers."""
    return {"x-api-key": API_KEY}


def init_payment(client, auth_headers, amount=50000, ref="order-1"):
    response = client.post("/init", json={"amount": amount, "ref": ref}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()["data"]


def webhook_body(content, amount=50000, reference="FT24001", **extra):
    body = {
        "id": 92704,
        "gateway": "Vietcombank",
        "transactionDate": "2024-01-15 10:00:00",
        "accountNumber": "0123499999",
        "code": None,
        "content": content,
        "transferType": "in",
        "transferAmount": amount,
        "accumulated": 19077000,
        "subAccount": None,
        "referenceCode": reference,
        "description": "",
    }
    body.update(extra)
    return body


class TestAuthentication:
    """Tests for the x-api-key check."""

    def test_missing_key(self, client):
        response = client.post("/init", json={"amount": 1000, "ref": "r"})
        assert response.status_code == 401

    def test_invalid_key(self, client):
        response = client.post("/init", json={"amount": 1000, "ref": "r"}, headers={"x-api-key": "wrong"})
        assert response.status_code == 403

    def test_search_requires_key(self, client):
        assert client.get("/search").status_code == 401

    def test_unconfigured_key_is_server_error(self):
        """Without APP_KEY protected routes cannot be used at all."""
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
        with TestClient(create_app(settings=settings)) as client:
            response = client.get("/search", headers={"x-api-key": "anything"})
        assert response.status_code == 500

    def test_callback_needs_no_key(self, client):
        response = client.post("/callback", json=webhook_body("nothing"))
        assert response.status_code == 404


class TestInitEndpoint:
    """Tests for POST /init."""

    def test_init_success(self, client, auth_headers):
        response = client.post("/init", json={"amount": 50000, "ref": "order-1"}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["ref"] == "order-1"
        assert body["data"]["amount"] == 50000
        assert len(body["data"]["content"]) == 11

    def test_duplicate_ref(self, client, auth_headers):
        init_payment(client, auth_headers, ref="order-1")

        response = client.post("/init", json={"amount": 1000, "ref": "order-1"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Reference code already exists"}

    @pytest.mark.parametrize(
        "body",
        [
            {"amount": 1000},
            {"ref": "order-1"},
            {"amount": 0, "ref": "order-1"},
            {"amount": -5, "ref": "order-1"},
            {"amount": 1000, "ref": ""},
            {"amount": 1000, "ref": "x" * 51},
        ],
    )
    def test_invalid_body(self, client, auth_headers, body):
        response = client.post("/init", json=body, headers=auth_headers)
        assert response.status_code == 422


class TestCallbackEndpoint:
    """Tests for POST /callback."""

    def test_callback_settles_payment(self, client, auth_headers):
        created = init_payment(client, auth_headers)

        response = client.post(
            "/callback",
            json=webhook_body(f"Chuyen tien ND {created['content']} tks"),
            headers={"user-agent": "SePay", "x-forwarded-for": "103.255.238.9"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Payment processed successfully"}

        search = client.get("/search", params={"status": "paid"}, headers=auth_headers).json()
        assert search["count"] == 1
        assert search["data"][0]["txnId"] == "FT24001"
        assert search["data"][0]["updatedAt"] is not None

    def test_redelivery_not_found(self, client, auth_headers):
        created = init_payment(client, auth_headers)
        body = webhook_body(f"ND {created['content']}")

        assert client.post("/callback", json=body).status_code == 200
        response = client.post("/callback", json=body)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Payment not found or already processed",
        }

    def test_wrong_amount_not_found(self, client, auth_headers):
        created = init_payment(client, auth_headers, amount=50000)
        response = client.post("/callback", json=webhook_body(created["content"], amount=5000))
        assert response.status_code == 404

    def test_malformed_webhook(self, client):
        response = client.post("/callback", json={"content": "ND abc"})
        assert response.status_code == 422

    def test_callback_rate_limited(self):
        """The unauthenticated webhook route is rate limited per caller."""
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            app_key=API_KEY,
            callback_rate_limit="2/minute",
        )
        with TestClient(create_app(settings=settings)) as client:
            codes = [
                client.post("/callback", json=webhook_body("nothing")).status_code
                for _ in range(3)
            ]
        assert codes == [404, 404, 429]

    def test_rate_limit_is_per_application(self):
        """Each app enforces its own configured limit with its own counters."""
        strict = create_app(settings=Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            app_key=API_KEY,
            callback_rate_limit="1/minute",
        ))
        relaxed = create_app(settings=Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            app_key=API_KEY,
            callback_rate_limit="5/minute",
        ))

        with TestClient(strict) as strict_client, TestClient(relaxed) as relaxed_client:
            strict_codes = [
                strict_client.post("/callback", json=webhook_body("nothing")).status_code
                for _ in range(2)
            ]
            relaxed_codes = [
                relaxed_client.post("/callback", json=webhook_body("nothing")).status_code
                for _ in range(3)
            ]

        assert strict_codes == [404, 429]
        assert relaxed_codes == [404, 404, 404]


class TestSearchEndpoint:
    """Tests for GET /search."""

    def test_search_all(self, client, auth_headers):
        init_payment(client, auth_headers, ref="order-1")
        init_payment(client, auth_headers, ref="order-2")

        response = client.get("/search", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [p["ref"] for p in body["data"]] == ["order-1", "order-2"]

    def test_search_by_ref_and_status(self, client, auth_headers):
        init_payment(client, auth_headers, ref="shop-1")
        init_payment(client, auth_headers, ref="invoice-1")

        response = client.get(
            "/search",
            params={"ref": "shop", "status": "unpaid"},
            headers=auth_headers,
        )

        assert [p["ref"] for p in response.json()["data"]] == ["shop-1"]

    def test_search_date_range(self, client, auth_headers):
        init_payment(client, auth_headers, ref="order-1")

        response = client.get(
            "/search",
            params={"from": "2000-01-01", "to": "2000-01-31"},
            headers=auth_headers,
        )

        assert response.json() == {"success": True, "data": [], "count": 0}

    @pytest.mark.parametrize(
        "params",
        [
            {"status": "refunded"},
            {"from": "not-a-date"},
            {"from": "2024-02-01", "to": "2024-01-01"},
        ],
    )
    def test_invalid_query(self, client, auth_headers, params):
        response = client.get("/search", params=params, headers=auth_headers)
        assert response.status_code == 422


class TestTransactionEndpoint:
    """Tests for GET /txn/{txn_id}."""

    def test_fetch_transaction(self, client, auth_headers):
        response = client.get("/txn/12345", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"id": "12345", "amount_in": "50000.00"},
        }

    def test_upstream_status_forwarded(self, client, auth_headers):
        response = client.get("/txn/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"].startswith("SePay API error")

    def test_unsuccessful_payload(self, client, auth_headers):
        response = client.get("/txn/failed", headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Not allowed"}

    def test_missing_sepay_key(self, auth_headers):
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:", app_key=API_KEY)
        with TestClient(create_app(settings=settings)) as client:
            response = client.get("/txn/12345", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "SEPAY_API_KEY not configured"}


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "payfastacy"}
