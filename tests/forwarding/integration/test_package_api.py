"""Integration tests for the package endpoints."""

import json

import pytest


class TestReceivePackage:
    def test_receive_returns_201(self, client):
        response = client.post(
            "/packages",
            json={"user_id": "user-001", "tracking_internal": "ABC123", "weight": 9.0, "total_boxes": 3},
        )
        assert response.status_code == 201
        assert "package_id" in response.json()

    def test_invalid_box_count(self, client):
        response = client.post(
            "/packages",
            json={"user_id": "user-001", "tracking_internal": "ABC123", "total_boxes": 0},
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["weight", "declared_value_usd"])
    def test_non_finite_amount_is_422(self, client, field):
        body = {"user_id": "user-001", "tracking_internal": "ABC123", field: float("nan")}
        response = client.post("/packages", content=json.dumps(body), headers={"Content-Type": "application/json"})
        assert response.status_code == 422


class TestGetPackage:
    def test_child_boxes(self, client, receive):
        package_id = receive(tracking_internal="ABC123", weight=9.0, total_boxes=3, is_master=True)
        data = client.get(f"/packages/{package_id}").json()
        assert data["status"] == "received"
        assert data["has_gex"] is False
        assert [b["label"] for b in data["child_boxes"]] == ["ABC123-1/3", "ABC123-2/3", "ABC123-3/3"]
        assert [b["weight"] for b in data["child_boxes"]] == [3.0, 3.0, 3.0]
        assert [b["is_master"] for b in data["child_boxes"]] == [True, False, False]

    def test_single_box_has_no_children(self, client, receive):
        package_id = receive()
        assert client.get(f"/packages/{package_id}").json()["child_boxes"] == []

    def test_unknown_package_is_404(self, client):
        assert client.get("/packages/nope").status_code == 404
