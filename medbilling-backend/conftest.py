import os
import tempfile
from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

# Point the app at a throwaway notes database before anything imports config
NOTES_DB = os.path.join(tempfile.gettempdir(), "medbilling_test_notes.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{NOTES_DB}"
os.environ["DATABASE_URL1"] = f"sqlite:///{NOTES_DB}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LOW_STOCK_ALERTS"] = "false"

from main import app  # noqa: E402
from store import Collection, DocumentStore  # noqa: E402


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    return DocumentStore.with_sample_data()


@pytest.fixture
def make_medicine():
    def _make(store, **overrides):
        fields = {
            "name": "Cetirizine 10mg",
            "description": "Antihistamine for allergies",
            "category": "Antihistamine",
            "price": 1.00,
            "stock": 40,
            "min_stock": 5,
            "manufacturer": "AllerCare",
            "expiry_date": date(2027, 6, 30),
            "batch_number": "AC010",
        }
        fields.update(overrides)
        return store.create(Collection.MEDICINES, fields)
    return _make


def medicine_named(store, name):
    for medicine in store.find(Collection.MEDICINES):
        if medicine.name == name:
            return medicine
    raise LookupError(name)


@pytest.fixture
def by_name():
    return medicine_named


@pytest.fixture
async def client(store):
    app.state.store = store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


async def _signup(client, email, role):
    resp = await client.post(
        "/api/auth/signup",
        json={"name": email.split("@")[0], "email": email, "password": "strongpass123", "role": role},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
async def staff_headers(client):
    return await _signup(client, "staff@stmarysclinic.org", "staff")


@pytest.fixture
async def admin_headers(client):
    return await _signup(client, "admin@stmarysclinic.org", "admin")
