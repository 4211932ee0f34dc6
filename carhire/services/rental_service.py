"""Rental administration."""
from __future__ import annotations

from typing import Optional

from ..models.store import Store
from .common import resolve_store
from .consistency import apply_rental_edit


class RentalService:
    """Admin view and edit of rentals. Edits go through the car-freeing rule."""

    @staticmethod
    def all_rentals(store: Optional[Store] = None):
        """Every rental with car and customer names attached, newest first."""
        st = resolve_store(store)
        out = []
        for r in st.list_rentals():
            car = st.get_car(r.get("car_id")) or {}
            cust = st.fetch_customer_profile(r.get("customer_id")) or {}
            name = " ".join(p for p in (cust.get("first_name"), cust.get("last_name")) if p)
            r["car"] = f"{car.get('make', '')} {car.get('model', '')}".strip() or "(deleted car)"
            r["license_plate"] = car.get("license_plate", "")
            r["customer"] = name or "(deleted customer)"
            out.append(r)
        return out

    @staticmethod
    def admin_update_rental(rental_id: str, form: dict, store: Optional[Store] = None):
        return apply_rental_edit(rental_id, {
            "status": form.get("status"),
            "start_date": form.get("start_date"),
            "end_date": form.get("end_date"),
        }, store=store)

    @staticmethod
    def invoice(rental_id: str, store: Optional[Store] = None):
        """Rental plus its insurance and payment rows, or None."""
        st = resolve_store(store)
        r = st.get_rental(rental_id)
        if r is None:
            return None
        r["insurance"] = st.insurance_for_rental(rental_id)
        r["payment"] = st.payment_for_rental(rental_id)
        r["car"] = st.get_car(r.get("car_id"))
        return r
