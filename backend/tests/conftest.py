import asyncio
from datetime import datetime, timezone, timedelta

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from server import app
from database import get_db

STAGES = [
    {"stage_id": "cutting", "name": "Cutting", "order": 1},
    {"stage_id": "sewing", "name": "Sewing", "order": 2},
    {"stage_id": "packing", "name": "Packing", "order": 3},
]

USERS = {
    "admin": {"user_id": "uid-admin", "email": "admin@example.com", "name": "Ada Admin", "role": "admin", "assigned_stages": []},
    "worker": {"user_id": "uid-worker", "email": "worker@example.com", "name": "Wes Worker", "role": "worker", "assigned_stages": ["cutting"]},
    "manager": {"user_id": "uid-manager", "email": "manager@example.com", "name": "Mia Manager", "role": "manager", "assigned_stages": []},
    "machine_manager": {"user_id": "uid-mm", "email": "mm@example.com", "name": "Max Machines", "role": "machine_manager", "assigned_stages": []},
}


def run(coro):
    """Drive a database coroutine from a sync test"""
    return asyncio.run(coro)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["stitchflow_test"]


@pytest.fixture
def client(db):
    # No context manager: startup (real Mongo connection) never runs
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stage_catalog(db):
    run(db.settings.insert_one({"setting_id": "production_stages", "stages": [dict(s) for s in STAGES]}))
    return STAGES


@pytest.fixture
def sessions(db):
    """Seed one user per role with a live session; returns auth headers by role"""
    async def seed():
        headers = {}
        expires_at = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()
        for role, user in USERS.items():
            await db.users.insert_one({**user, "created_at": datetime.now(timezone.utc).isoformat()})
            token = f"test_session_{role}"
            await db.user_sessions.insert_one({
                "user_id": user["user_id"],
                "session_token": token,
                "expires_at": expires_at,
                "created_at": datetime.now(timezone.utc).isoformat()
            })
            headers[role] = {"Authorization": f"Bearer {token}"}
        return headers
    return run(seed())


@pytest.fixture
def admin_headers(sessions):
    return sessions["admin"]


@pytest.fixture
def worker_headers(sessions):
    return sessions["worker"]


def order_payload(order_number="A1001", **overrides):
    payload = {
        "order_number": order_number,
        "customer": {"name": "Ana Lopez", "email": "ana@example.com", "phone": "555-0100"},
        "products": [{"name": "Embroidered Cap", "sku": "CAP-RED", "quantity": 5, "price": 12.5, "color": "Red"}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_order(client, admin_headers, stage_catalog):
    """Create an order through the API as admin"""
    def _create(order_number="A1001", **overrides):
        response = client.post("/api/orders", json=order_payload(order_number, **overrides), headers=admin_headers)
        assert response.status_code == 200, response.text
        return response.json()
    return _create
