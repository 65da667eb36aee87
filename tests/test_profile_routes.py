"""
Tests for the cross-origin profile functions.
"""

import pytest
from unittest.mock import MagicMock


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Content-Type": "application/json",
}


def assert_cors(response):
    for name, value in CORS_HEADERS.items():
        assert response.headers.get(name) == value


class TestProfileData:

    @pytest.mark.parametrize("path", ["/api/profile-data", "/.netlify/functions/profile-data"])
    def test_preflight(self, client, path):
        response = client.options(path)

        assert response.status_code == 200
        assert response.data == b""
        assert_cors(response)

    def test_missing_user_id(self, client):
        response = client.post("/api/profile-data", json={})

        assert response.status_code == 400
        assert response.get_json() == {"error": "User ID required"}
        assert_cors(response)

    def test_missing_body(self, client):
        response = client.post("/api/profile-data")

        assert response.status_code == 400
        assert response.get_json() == {"error": "User ID required"}

    def test_success(self, client):
        response = client.post("/api/profile-data", json={"userId": "user-1"})

        assert response.status_code == 200
        assert_cors(response)
        body = response.get_json()
        assert set(body) == {"addresses", "paymentMethods", "orders"}
        assert len(body["addresses"]) == 1
        assert [pm["last4"] for pm in body["paymentMethods"]] == ["0005", "4242"]
        assert len(body["orders"]) == 10

    def test_legacy_path(self, client):
        response = client.post("/.netlify/functions/profile-data", json={"userId": "user-1"})

        assert response.status_code == 200
        assert len(response.get_json()["orders"]) == 10

    def test_unknown_user_gets_empty_lists(self, client):
        response = client.post("/api/profile-data", json={"userId": "ghost"})

        assert response.status_code == 200
        assert response.get_json() == {"addresses": [], "paymentMethods": [], "orders": []}

    @pytest.mark.parametrize("path", ["/api/profile-data", "/.netlify/functions/profile-data"])
    def test_wrong_method_still_has_cors_headers(self, client, path):
        response = client.get(path)

        assert response.status_code == 405
        assert "error" in response.get_json()
        assert_cors(response)

    def test_unknown_function_has_cors_headers(self, client):
        response = client.post("/api/no-such-function", json={})

        assert response.status_code == 404
        assert_cors(response)

    def test_checkout_routes_have_no_cors_headers(self, client):
        response = client.get("/cart")

        assert "Access-Control-Allow-Origin" not in response.headers

    def test_unexpected_failure_is_500_with_message(self, app, client):
        aggregator = MagicMock()
        aggregator.aggregate.side_effect = RuntimeError("connection reset by peer")
        app.config["PROFILE_AGGREGATOR"] = aggregator

        response = client.post("/api/profile-data", json={"userId": "user-1"})

        assert response.status_code == 500
        assert response.get_json() == {"error": "connection reset by peer"}
        assert_cors(response)


class TestSaveAddress:

    def test_preflight(self, client):
        response = client.options("/api/save-address")

        assert response.status_code == 200
        assert response.data == b""
        assert_cors(response)

    def test_missing_fields(self, client):
        response = client.post("/api/save-address", json={"userId": "user-1"})

        assert response.status_code == 400
        assert response.get_json() == {"error": "Missing required fields"}
        assert_cors(response)

    def test_saves_default_address(self, client, populated_store):
        response = client.post("/api/save-address", json={
            "userId": "user-1",
            "type": "shipping",
            "address": {"line1": "5 Pier St", "city": "Erie", "state": "PA", "zip": "16501"},
        })

        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        rows = populated_store.select("addresses", filters={"user_id": "user-1", "is_default": True})
        assert [row["line1"] for row in rows] == ["5 Pier St"]

    def test_store_rejection_is_500(self, client, populated_store):
        response = client.post("/api/save-address", json={
            "userId": "user-1",
            "type": "shipping",
            "address": {"galaxy": "Andromeda"},
        })

        assert response.status_code == 500
        assert "addresses" in response.get_json()["error"]
        assert_cors(response)

        # The previous default survives a rejected save
        rows = populated_store.select("addresses", filters={"user_id": "user-1"})
        assert [(row["line1"], row["is_default"]) for row in rows] == [("1 Dock Rd", True)]

    def test_address_round_trip_is_verbatim(self, client):
        client.post("/api/save-address", json={
            "userId": "user-1",
            "type": "shipping",
            "address": {"line1": "A & B Dock <Rear>", "city": "Erie"},
        })

        body = client.post("/api/profile-data", json={"userId": "user-1"}).get_json()

        assert sorted(a["line1"] for a in body["addresses"]) == ["1 Dock Rd", "A & B Dock <Rear>"]


class TestUpdateProfile:

    def test_updates_profile(self, client, populated_store):
        response = client.post("/.netlify/functions/update-profile", json={
            "userId": "user-1",
            "profile": {"full_name": "Dana Reyes", "phone": "555-0100"},
        })

        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        row = populated_store.select("profiles", filters={"id": "user-1"})[0]
        assert row["phone"] == "555-0100"

    def test_ampersand_is_not_escaped(self, client, populated_store):
        client.post("/api/update-profile", json={
            "userId": "user-1",
            "profile": {"full_name": "Dana Reyes", "company_name": "Smith & Sons"},
        })

        row = populated_store.select("profiles", filters={"id": "user-1"})[0]
        assert row["company_name"] == "Smith & Sons"

    def test_missing_profile(self, client):
        response = client.post("/api/update-profile", json={"userId": "user-1"})

        assert response.status_code == 400
        assert response.get_json() == {"error": "Missing required fields"}


class TestHealth:

    def test_health_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["checks"]["store"] == "ok"

    def test_health_degraded(self, app, client):
        store = MagicMock()
        store.ping.return_value = False
        app.config["PROFILE_STORE"] = store

        response = client.get("/health")

        assert response.status_code == 503
        assert response.get_json()["status"] == "degraded"
