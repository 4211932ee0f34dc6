from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import CarHireError
from ..models.store import Store
from ..utils.constants import PROFILE_FIELDS
from .common import customer_from_dict, resolve_store
from .consistency import cascade_cancel_customer

logger = logging.getLogger(__name__)


def _clean_profile(form: dict) -> dict:
    """Keep known profile fields; blank text becomes None."""
    out = {}
    for name in PROFILE_FIELDS:
        if name in form:
            value = form.get(name)
            value = value.strip() if isinstance(value, str) else value
            out[name] = value or None
    return out


class CustomerService:
    """Self-service profile operations and customer administration."""

    @staticmethod
    def profile(identity_id: str, store: Optional[Store] = None):
        """Return the Customer for an identity, or None when the profile is gone."""
        return customer_from_dict(resolve_store(store).fetch_customer_profile(identity_id))

    @staticmethod
    def update_profile(identity_id: str, form: dict, store: Optional[Store] = None):
        """Upsert the caller's profile; no field is mandatory here."""
        try:
            resolve_store(store).upsert_customer_profile(identity_id, _clean_profile(form))
        except CarHireError as e:
            logger.error("Updating profile %s failed: %s", identity_id, e)
            return False, "There was a problem updating your profile."
        return True, "Your profile has been updated successfully."

    @staticmethod
    def delete_own_account(identity_id: str, store: Optional[Store] = None):
        """Delete the caller's profile (cascade-cancelling rentals); the login remains."""
        ok, msg = cascade_cancel_customer(identity_id, store=store)
        if ok:
            return True, "Your account data has been deleted. You will now be signed out."
        return False, msg

    @staticmethod
    def rentals_for_customer(customer_id: str, store: Optional[Store] = None):
        """Return this customer's rentals with car, insurance and payment info attached."""
        st = resolve_store(store)
        out = []
        for r in st.list_rentals(customer_id=customer_id):
            car = st.get_car(r.get("car_id")) or {}
            ins = st.insurance_for_rental(r["rental_id"]) or {}
            pay = st.payment_for_rental(r["rental_id"]) or {}
            out.append({
                "rental_id": r["rental_id"],
                "car_id": r.get("car_id"),
                "make": car.get("make", ""),
                "model": car.get("model", ""),
                "start_date": r.get("start_date"),
                "end_date": r.get("end_date"),
                "status": r.get("status"),
                "insurance_type": ins.get("type"),
                "amount": pay.get("amount"),
            })
        out.sort(key=lambda x: x.get("start_date") or "", reverse=True)
        return out

    # ---------- admin ----------
    @staticmethod
    def all_customers(store: Optional[Store] = None):
        st = resolve_store(store)
        out = []
        for row in st.list_customers():
            ident = st.get_identity(row["customer_id"]) or {}
            row["email"] = ident.get("email", "")
            out.append(row)
        return out

    @staticmethod
    def admin_update_customer(customer_id: str, form: dict, store: Optional[Store] = None):
        st = resolve_store(store)
        if st.fetch_customer_profile(customer_id) is None:
            return False, "Customer not found"
        fields = _clean_profile(form)
        fields["admin"] = str(form.get("admin") or "").lower() in ("1", "true", "on", "yes")
        try:
            st.upsert_customer_profile(customer_id, fields)
        except CarHireError as e:
            logger.error("Updating customer %s failed: %s", customer_id, e)
            return False, "Failed to update customer"
        return True, "Customer updated successfully"

    @staticmethod
    def admin_delete_customer(customer_id: str, store: Optional[Store] = None):
        if resolve_store(store).fetch_customer_profile(customer_id) is None:
            return False, "Customer not found"
        return cascade_cancel_customer(customer_id, store=store)
