from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..exceptions import CarHireError, CarNotFoundError
from ..models.store import Store
from ..utils.constants import CAR_STATUSES, CarStatus, RentalStatus
from .common import _lc, resolve_store, to_float_safe, to_int_safe

logger = logging.getLogger(__name__)

MIN_YEAR = 1900


def _with_location(st: Store, car: dict) -> dict:
    loc = st.get_location(car.get("location_id")) if car.get("location_id") else None
    car["location_name"] = loc.get("name") if loc else ""
    return car


class CarService:
    """Car catalogue: storefront listing plus admin create, update, delete."""

    @staticmethod
    def available_cars(keyword=None, max_rate=None, *, store: Optional[Store] = None):
        """
        Cars that can be booked now, newest first.
        - keyword matches make, model or colour (case-insensitive, partial)
        - max_rate is ignored when it does not parse
        """
        st = resolve_store(store)
        res = st.list_cars(status=CarStatus.AVAILABLE)

        kw = _lc(keyword).strip()
        if kw:
            res = [
                c for c in res
                if any(kw in _lc(c.get(name)) for name in ("make", "model", "colour"))
            ]

        max_val = to_float_safe(max_rate)
        if max_val is not None:
            res = [c for c in res if float(c.get("rental_rate") or 0) <= max_val]

        return [_with_location(st, c) for c in res]

    @staticmethod
    def all_cars(store: Optional[Store] = None):
        st = resolve_store(store)
        return [_with_location(st, c) for c in st.list_cars()]

    @staticmethod
    def get_car(car_id: str, store: Optional[Store] = None) -> dict:
        """Return a car dict by ID or raise CarNotFoundError."""
        car = resolve_store(store).get_car(car_id)
        if car is None:
            raise CarNotFoundError(f"Error: car with ID '{car_id}' not found")
        return car

    @staticmethod
    def _clean(payload: dict, st: Store):
        """Validate admin car input. Returns (data, error_message)."""
        make = (payload.get("make") or "").strip()
        model = (payload.get("model") or "").strip()
        plate = (payload.get("license_plate") or "").strip().upper()
        colour = (payload.get("colour") or "").strip()
        year = to_int_safe(payload.get("year"))
        rate = to_float_safe(payload.get("rental_rate"))
        status = (payload.get("status") or CarStatus.AVAILABLE).strip().lower()
        location_id = (payload.get("location_id") or "").strip()

        if not make or not model or not plate or not colour:
            return None, "Make, model, licence plate and colour are required"
        if year is None or not (MIN_YEAR <= year <= date.today().year + 1):
            return None, "Invalid year"
        if rate is None or rate <= 0:
            return None, "Daily rate must be a positive number"
        if status not in CAR_STATUSES:
            return None, "Status must be available, rented or maintenance"
        if not location_id or st.get_location(location_id) is None:
            return None, "Unknown location"

        return {
            "make": make,
            "model": model,
            "year": year,
            "license_plate": plate,
            "colour": colour,
            "rental_rate": rate,
            "status": status,
            "location_id": location_id,
        }, None

    @staticmethod
    def admin_create_car(payload: dict, store: Optional[Store] = None):
        """
        Returns:
            (ok: bool, message: str, car_id: Optional[str])
        """
        st = resolve_store(store)
        data, err = CarService._clean(payload, st)
        if err:
            return False, err, None
        try:
            car_id = st.create_car(data)
        except CarHireError as e:
            logger.error("Creating car failed: %s", e)
            return False, "Failed to add car", None
        return True, "Car added successfully", car_id

    @staticmethod
    def admin_update_car(car_id: str, payload: dict, store: Optional[Store] = None):
        st = resolve_store(store)
        if st.get_car(car_id) is None:
            return False, "Car not found"
        data, err = CarService._clean(payload, st)
        if err:
            return False, err
        try:
            st.update_car(car_id, data)
        except CarHireError as e:
            logger.error("Updating car %s failed: %s", car_id, e)
            return False, "Failed to update car"
        return True, "Car updated successfully"

    @staticmethod
    def admin_delete_car(car_id: str, store: Optional[Store] = None):
        """
        Delete a car if and only if it exists and no active rental references it.
        """
        st = resolve_store(store)
        car = st.get_car(car_id)
        if car is None:
            return False, "Car not found"
        if any(r.get("car_id") == car_id for r in st.list_rentals(status=RentalStatus.ACTIVE)):
            return False, "Cannot delete: active rental exists"
        try:
            st.delete_car(car_id)
        except CarHireError as e:
            logger.error("Deleting car %s failed: %s", car_id, e)
            return False, "Failed to delete car"
        return True, "Car deleted successfully"

    @staticmethod
    def locations(store: Optional[Store] = None):
        return resolve_store(store).list_locations()
