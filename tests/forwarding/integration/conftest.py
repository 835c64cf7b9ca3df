import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from forwarding.api import (
    consolidation_router,
    gex_router,
    package_router,
    payment_router,
    register_error_handlers,
)
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(package_router)
    app.include_router(consolidation_router)
    app.include_router(gex_router)
    app.include_router(payment_router)
    register_exception_handlers(app)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def receive(client):
    """Receive a package through the API and return its id."""

    def _receive(**overrides):
        body = {"user_id": "user-001", "tracking_internal": "API-1", "weight": 1.0}
        body.update(overrides)
        response = client.post("/packages", json=body)
        assert response.status_code == 201
        return response.json()["package_id"]

    return _receive
