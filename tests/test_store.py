"""
Store behaviour: persistence across instances and storage-level rules.
"""

import pickle

import pytest

from carhire.exceptions import ConstraintViolation, CustomerNotFoundError, PersistenceError
from carhire.models.store import Store


def test_data_survives_reload(tmp_path):
    path = tmp_path / "data.pkl"
    st = Store(path)
    loc = st.create_location({"name": "York"})
    st.upsert_customer_profile("c1", {"first_name": "Ann", "unknown": "dropped"})

    again = Store(path)
    assert again.get_location(loc)["name"] == "York"
    profile = again.fetch_customer_profile("c1")
    assert profile["first_name"] == "Ann"
    assert "unknown" not in profile
    assert profile["admin"] is False


def test_incompatible_file_is_backed_up(tmp_path):
    path = tmp_path / "data.pkl"
    path.write_bytes(pickle.dumps(["not", "a", "dict"]))
    st = Store(path)
    assert st.cars == {}
    assert (tmp_path / "data.pkl.bak").exists()


def test_reads_are_copies(store, car_id):
    car = store.get_car(car_id)
    car["status"] = "rented"
    assert store.get_car(car_id)["status"] == "available"


def test_one_active_rental_per_car(store, car_id):
    store.insert_rental({"car_id": car_id, "customer_id": "a", "status": "active"})
    with pytest.raises(ConstraintViolation):
        store.insert_rental({"car_id": car_id, "customer_id": "b", "status": "active"})

    done = store.insert_rental({"car_id": car_id, "customer_id": "b", "status": "completed"})
    with pytest.raises(ConstraintViolation):
        store.update_rental(done, {"status": "active"})


def test_invalid_status_rejected(store, car_id):
    with pytest.raises(ConstraintViolation):
        store.update_car_status(car_id, "parked")
    with pytest.raises(ConstraintViolation):
        store.batch_update_rental_status([], "lost")


def test_delete_profile_keeps_identity(store):
    identity_id = store.create_identity("x@example.com", "hash")
    store.upsert_customer_profile(identity_id, {})
    store.delete_customer_profile(identity_id)
    assert store.fetch_customer_profile(identity_id) is None
    assert store.get_identity(identity_id)["email"] == "x@example.com"
    with pytest.raises(CustomerNotFoundError):
        store.delete_customer_profile(identity_id)


def test_active_rentals_listing(store, car_id):
    rid = store.insert_rental({"car_id": car_id, "customer_id": "c1", "status": "active"})
    store.insert_rental({"car_id": "other", "customer_id": "c1", "status": "cancelled"})
    assert store.list_active_rentals_for_customer("c1") == [{"rental_id": rid, "car_id": car_id}]


def test_failed_dump_leaves_tables_unchanged(store, car_id, monkeypatch):
    def disk_full():
        raise PersistenceError("Error: disk full")

    monkeypatch.setattr(store, "_dump", disk_full)

    with pytest.raises(PersistenceError):
        store.insert_rental({"car_id": car_id, "customer_id": "a", "status": "active"})
    with pytest.raises(PersistenceError):
        store.update_car_status(car_id, "rented")
    with pytest.raises(PersistenceError):
        store.delete_car(car_id)

    assert store.rentals == {}
    assert store.get_car(car_id)["status"] == "available"

    monkeypatch.undo()
    store.create_location({"name": "Hull"})
    assert Store(store.path).rentals == {}
