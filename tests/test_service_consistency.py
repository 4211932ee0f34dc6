"""
Car status follows rentals: closing a rental frees its car, and deleting a
customer cancels their active rentals before the profile goes.
"""

import pytest

from carhire.exceptions import PersistenceError
from carhire.services.consistency import apply_rental_edit, cascade_cancel_customer, frees_car
from carhire.services.customer_service import CustomerService

from conftest import add_car, add_customer


def boom(*args, **kwargs):
    raise PersistenceError("Error: backend unavailable")


def rent(store, car_id, customer_id, status="active"):
    rid = store.insert_rental({
        "car_id": car_id,
        "customer_id": customer_id,
        "start_date": "2030-06-01T00:00:00+00:00",
        "end_date": "2030-06-04T00:00:00+00:00",
        "status": status,
    })
    if status == "active":
        store.update_car_status(car_id, "rented")
    return rid


@pytest.mark.parametrize("new_status", ["completed", "cancelled"])
def test_closing_rental_frees_car(store, car_id, customer_id, new_status):
    rid = rent(store, car_id, customer_id)
    ok, msg = apply_rental_edit(rid, {"status": new_status}, store=store)
    assert ok, msg
    assert store.get_rental(rid)["status"] == new_status
    assert store.get_car(car_id)["status"] == "available"


def test_dates_only_edit_leaves_car_alone(store, car_id, customer_id):
    rid = rent(store, car_id, customer_id)
    ok, msg = apply_rental_edit(rid, {"start_date": "2030-06-02", "end_date": "2030-06-09"}, store=store)
    assert ok, msg
    rental = store.get_rental(rid)
    assert rental["start_date"].startswith("2030-06-02")
    assert rental["end_date"].startswith("2030-06-09")
    assert rental["status"] == "active"
    assert store.get_car(car_id)["status"] == "rented"


def test_same_closing_status_does_not_touch_car(store, car_id, customer_id):
    rid = rent(store, car_id, customer_id, status="completed")
    store.update_car_status(car_id, "maintenance")
    ok, _ = apply_rental_edit(rid, {"status": "completed"}, store=store)
    assert ok
    assert store.get_car(car_id)["status"] == "maintenance"


def test_frees_car_rule():
    assert frees_car("active", "completed")
    assert frees_car("cancelled", "completed")
    assert not frees_car("completed", "completed")
    assert not frees_car("completed", "active")
    assert not frees_car("active", None)


def test_invalid_edit_rejected(store, car_id, customer_id):
    rid = rent(store, car_id, customer_id)
    ok, msg = apply_rental_edit(rid, {"status": "lost"}, store=store)
    assert not ok
    ok, msg = apply_rental_edit(rid, {"end_date": "2030-05-01"}, store=store)
    assert not ok and "after" in msg
    ok, msg = apply_rental_edit("missing", {"status": "completed"}, store=store)
    assert not ok
    assert store.get_rental(rid)["status"] == "active"


def test_failed_car_release_reverts_rental(store, car_id, customer_id, monkeypatch):
    rid = rent(store, car_id, customer_id)
    monkeypatch.setattr(store, "update_car_status", boom)
    ok, msg = apply_rental_edit(rid, {"status": "completed"}, store=store)
    assert not ok
    assert msg == "Failed to update car status"
    assert store.get_rental(rid)["status"] == "active"


def test_delete_customer_cancels_rentals_and_frees_cars(store, location_id, customer_id):
    car_a = add_car(store, location_id)
    car_b = add_car(store, location_id, make="Ford", model="Fiesta")
    r_active = rent(store, car_a, customer_id)
    r_done = rent(store, car_b, customer_id, status="completed")

    ok, msg = cascade_cancel_customer(customer_id, store=store)
    assert ok, msg

    assert store.get_rental(r_active)["status"] == "cancelled"
    assert store.get_rental(r_done)["status"] == "completed"
    assert store.get_car(car_a)["status"] == "available"
    assert store.fetch_customer_profile(customer_id) is None
    assert store.get_identity(customer_id) is not None


def test_delete_customer_without_rentals(store, customer_id):
    ok, _ = cascade_cancel_customer(customer_id, store=store)
    assert ok
    assert store.fetch_customer_profile(customer_id) is None


def test_rental_update_failure_keeps_customer(store, car_id, customer_id, monkeypatch):
    rid = rent(store, car_id, customer_id)
    monkeypatch.setattr(store, "batch_update_rental_status", boom)

    ok, msg = cascade_cancel_customer(customer_id, store=store)
    assert not ok
    assert msg == "Failed to cancel active rentals"
    assert store.fetch_customer_profile(customer_id) is not None
    assert store.get_rental(rid)["status"] == "active"
    assert store.get_car(car_id)["status"] == "rented"


def test_car_update_failure_restores_rentals(store, car_id, customer_id, monkeypatch):
    rid = rent(store, car_id, customer_id)
    monkeypatch.setattr(store, "batch_update_car_status", boom)

    ok, msg = cascade_cancel_customer(customer_id, store=store)
    assert not ok
    assert msg == "Failed to update car status"
    assert store.get_rental(rid)["status"] == "active"
    assert store.fetch_customer_profile(customer_id) is not None


def test_profile_delete_failure_restores_rentals_and_cars(store, car_id, customer_id, monkeypatch):
    rid = rent(store, car_id, customer_id)
    monkeypatch.setattr(store, "delete_customer_profile", boom)

    ok, msg = cascade_cancel_customer(customer_id, store=store)
    assert not ok
    assert msg == "Failed to delete customer"
    assert store.fetch_customer_profile(customer_id) is not None
    assert store.get_rental(rid)["status"] == "active"
    assert store.get_car(car_id)["status"] == "rented"


def test_admin_and_self_service_delete_share_the_cascade(store, car_id):
    admin_target = add_customer(store, email="a@example.com")
    self_target = add_customer(store, email="b@example.com")
    rid = rent(store, car_id, admin_target)

    ok, _ = CustomerService.admin_delete_customer(admin_target, store=store)
    assert ok
    assert store.get_rental(rid)["status"] == "cancelled"

    ok, msg = CustomerService.delete_own_account(self_target, store=store)
    assert ok
    assert "signed out" in msg

    ok, msg = CustomerService.admin_delete_customer(self_target, store=store)
    assert not ok and msg == "Customer not found"
