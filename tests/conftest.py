import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest

from carhire import create_app
from carhire.models.store import Store
from carhire.utils.security import generate_hash

PASSWORD = "Secret123"

COMPLETE_PROFILE = {
    "first_name": "Jane",
    "last_name": "Driver",
    "licence_number": "DRIVE801234JD9AB",
    "address_line1": "1 High Street",
    "city": "Leeds",
    "county": "West Yorkshire",
    "postcode": "LS1 1AA",
    "date_of_birth": "1990-04-12",
}


@pytest.fixture
def store(tmp_path):
    """A fresh file-backed store per test, installed as the global instance."""
    st = Store(tmp_path / "data.pkl")
    Store.use(st)
    yield st
    Store.use(None)


@pytest.fixture
def app(store):
    return create_app({"TESTING": True, "SECRET_KEY": "test"}, store=store)


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def location_id(store):
    return store.create_location({"name": "Leeds City", "city": "Leeds", "postcode": "LS1 4DL"})


def add_car(store, location_id, rate=50.0, status="available", make="Volkswagen", model="Golf",
            colour="Grey"):
    return store.create_car({
        "location_id": location_id,
        "make": make,
        "model": model,
        "year": 2023,
        "license_plate": "LS23 VWG",
        "colour": colour,
        "rental_rate": rate,
        "status": status,
    })


def add_customer(store, email="jane@example.com", profile=None, admin=False):
    identity_id = store.create_identity(email, generate_hash(PASSWORD))
    store.upsert_customer_profile(identity_id, {**(profile or {}), "admin": admin})
    return identity_id


@pytest.fixture
def car_id(store, location_id):
    return add_car(store, location_id)


@pytest.fixture
def customer_id(store):
    """Customer whose profile already has every required field."""
    return add_customer(store, profile=COMPLETE_PROFILE)


@pytest.fixture
def new_customer_id(store):
    """Customer with an empty profile (must go through the details step)."""
    return add_customer(store, email="new@example.com")


def login(client, email, password=PASSWORD, follow=False):
    return client.post("/login", data={"email": email, "password": password},
                       follow_redirects=follow)
