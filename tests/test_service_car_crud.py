"""
Admin car operations and the storefront listing.
"""

import pytest

from carhire.exceptions import CarNotFoundError
from carhire.services.car_service import CarService

from conftest import add_car


def payload(loc, **over):
    data = {
        "make": "Toyota",
        "model": "Yaris",
        "year": "2022",
        "license_plate": "ab12 cde",
        "colour": "Red",
        "rental_rate": "42.5",
        "status": "available",
        "location_id": loc,
    }
    data.update(over)
    return data


def test_admin_create_update_and_delete_car(store, location_id):
    ok, msg, car_id = CarService.admin_create_car(payload(location_id), store=store)
    assert ok, msg
    car = store.get_car(car_id)
    assert car["license_plate"] == "AB12 CDE"
    assert car["rental_rate"] == 42.5 and car["year"] == 2022

    ok, msg = CarService.admin_update_car(car_id, payload(location_id, status="maintenance"), store=store)
    assert ok, msg
    assert store.get_car(car_id)["status"] == "maintenance"

    ok, msg = CarService.admin_delete_car(car_id, store=store)
    assert ok, msg
    assert store.get_car(car_id) is None


@pytest.mark.parametrize("over,hint", [
    ({"make": ""}, "required"),
    ({"year": "1850"}, "year"),
    ({"rental_rate": "0"}, "rate"),
    ({"status": "stolen"}, "status"),
    ({"location_id": "nowhere"}, "location"),
])
def test_admin_create_rejects_bad_input(store, location_id, over, hint):
    ok, msg, car_id = CarService.admin_create_car(payload(location_id, **over), store=store)
    assert not ok and car_id is None
    assert hint in msg.lower()
    assert not store.cars


def test_cannot_delete_car_with_active_rental(store, car_id, customer_id):
    store.insert_rental({"car_id": car_id, "customer_id": customer_id, "status": "active",
                         "start_date": "2030-01-01", "end_date": "2030-01-02"})
    ok, msg = CarService.admin_delete_car(car_id, store=store)
    assert not ok
    assert "active rental" in msg
    assert store.get_car(car_id) is not None


def test_available_cars_filters(store, location_id):
    add_car(store, location_id, rate=35, make="Ford", model="Fiesta", colour="Blue")
    add_car(store, location_id, rate=85, make="BMW", model="3 Series")
    add_car(store, location_id, rate=30, make="Ford", model="Ka", status="maintenance")

    cars = CarService.available_cars(store=store)
    assert {c["model"] for c in cars} == {"Fiesta", "3 Series"}
    assert all(c["location_name"] == "Leeds City" for c in cars)

    assert [c["model"] for c in CarService.available_cars(keyword="ford", store=store)] == ["Fiesta"]
    assert [c["model"] for c in CarService.available_cars(keyword="BLUE", store=store)] == ["Fiesta"]
    assert [c["model"] for c in CarService.available_cars(max_rate="50", store=store)] == ["Fiesta"]
    assert len(CarService.available_cars(max_rate="cheap", store=store)) == 2


def test_get_car_missing_raises(store):
    with pytest.raises(CarNotFoundError):
        CarService.get_car("missing", store=store)
