"""
Rules that keep car status in step with rentals.

A car is "rented" exactly while it has one active rental, so anything that
ends a rental must also free its car:

- deleting a customer cancels their active rentals and frees those cars
  before the profile row goes;
- an admin moving a rental to completed/cancelled frees its car.

Each write runs in order. When a later write fails, the earlier ones are
reverted before the error is reported, including a failed profile delete
at the end of the cascade.
"""
import logging
from typing import Optional

from ..exceptions import CarHireError, RentalNotFoundError
from ..models.store import Store
from ..utils.constants import (
    CLOSING_RENTAL_STATES,
    RENTAL_STATUSES,
    CarStatus,
    RentalStatus,
)
from .common import as_datetime, resolve_store

logger = logging.getLogger(__name__)


def cascade_cancel_customer(customer_id: str, store: Optional[Store] = None):
    """
    Cancel the customer's active rentals, free their cars, then delete the
    profile row. The identity record is never touched.

    Returns:
        (ok: bool, message: str)
    """
    st = resolve_store(store)

    try:
        active = st.list_active_rentals_for_customer(customer_id)
    except CarHireError as e:
        logger.error("Listing active rentals for customer %s failed: %s", customer_id, e)
        return False, "Failed to load customer rentals"

    rental_ids = [r["rental_id"] for r in active]
    car_ids = list(dict.fromkeys(r["car_id"] for r in active if r.get("car_id")))
    car_statuses = {cid: (st.get_car(cid) or {}).get("status") for cid in car_ids}

    if rental_ids:
        try:
            st.batch_update_rental_status(rental_ids, RentalStatus.CANCELLED)
        except CarHireError as e:
            logger.error("Cancelling rentals %s failed: %s", rental_ids, e)
            return False, "Failed to cancel active rentals"

        if car_ids:
            try:
                st.batch_update_car_status(car_ids, CarStatus.AVAILABLE)
            except CarHireError as e:
                logger.error("Freeing cars %s failed: %s", car_ids, e)
                _restore_rentals(st, rental_ids)
                return False, "Failed to update car status"

    try:
        st.delete_customer_profile(customer_id)
    except CarHireError as e:
        logger.error("Deleting customer %s failed: %s", customer_id, e)
        if rental_ids:
            _restore_cars(st, car_statuses)
            _restore_rentals(st, rental_ids)
        return False, "Failed to delete customer"

    logger.info("Customer %s deleted; %d active rental(s) cancelled", customer_id, len(rental_ids))
    return True, "Customer data deleted successfully. Note: the login record still exists."


def _restore_rentals(st: Store, rental_ids):
    try:
        st.batch_update_rental_status(rental_ids, RentalStatus.ACTIVE)
    except CarHireError as e:
        logger.error("Could not restore rentals %s to active: %s", rental_ids, e)


def _restore_cars(st: Store, car_statuses: dict):
    for car_id, status in car_statuses.items():
        if status is None:
            continue
        try:
            st.update_car_status(car_id, status)
        except CarHireError as e:
            logger.error("Could not restore car %s to %s: %s", car_id, status, e)


def frees_car(previous_status: Optional[str], new_status: Optional[str]) -> bool:
    """True when a status edit moves a rental into completed/cancelled from anything else."""
    return new_status in CLOSING_RENTAL_STATES and previous_status != new_status


def apply_rental_edit(rental_id: str, changes: dict, store: Optional[Store] = None):
    """
    Admin edit of a rental's dates and/or status. Moving the rental into
    completed or cancelled frees its car; a dates-only edit does not.

    Returns:
        (ok: bool, message: str)
    """
    st = resolve_store(store)
    rental = st.get_rental(rental_id)
    if rental is None:
        return False, RentalNotFoundError.default_message

    updates = {}
    status = (changes.get("status") or "").strip().lower() or None
    if status is not None:
        if status not in RENTAL_STATUSES:
            return False, "Status must be active, completed or cancelled"
        updates["status"] = status

    for name in ("start_date", "end_date"):
        value = changes.get(name)
        if value:
            try:
                updates[name] = as_datetime(value).isoformat()
            except ValueError:
                return False, "Invalid dates (YYYY-MM-DD)"

    start = updates.get("start_date", rental.get("start_date"))
    end = updates.get("end_date", rental.get("end_date"))
    if start and end and as_datetime(end) <= as_datetime(start):
        return False, "End date must be after start date"

    if not updates:
        return True, "Nothing to update"

    previous = {k: rental.get(k) for k in updates}
    try:
        st.update_rental(rental_id, updates)
    except CarHireError as e:
        logger.error("Updating rental %s failed: %s", rental_id, e)
        return False, "Failed to update rental"

    if frees_car(rental.get("status"), status):
        try:
            st.update_car_status(rental["car_id"], CarStatus.AVAILABLE)
        except CarHireError as e:
            logger.error("Freeing car %s after rental %s edit failed: %s", rental["car_id"], rental_id, e)
            try:
                st.update_rental(rental_id, previous)
            except CarHireError as revert_err:
                logger.error("Could not revert rental %s: %s", rental_id, revert_err)
            return False, "Failed to update car status"

    logger.info("Rental %s updated: %s", rental_id, updates)
    return True, "Rental updated successfully"
