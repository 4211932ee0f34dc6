"""
Booking workflow: walks one customer through hiring one car.

The wizard is an explicit state machine. ``TRANSITIONS`` lists every legal
(state, event) pair and the states it may lead to; anything else raises
IllegalTransitionError. Guards are the validation methods, side effects are
the profile upsert on ``save_details`` and the four submit writes.

    dates --choose_dates--> details | payment
    details --save_details--> payment
    details, payment --back--> dates
    payment --pay--> confirmation
    confirmation --submit--> closed
    * --close--> closed
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from ..exceptions import (
    BookingStepError,
    CarHireError,
    CarNotFoundError,
    CarUnavailableError,
    IllegalTransitionError,
)
from ..models.customer import is_blank
from ..models.insurance import cover_for
from ..models.store import Store
from ..utils.constants import (
    DEFAULT_BOOKING_DAYS,
    InsuranceTier,
    PAYMENT_COMPLETED,
    PAYMENT_METHOD_CARD,
    PROFILE_FIELDS,
    REQUIRED_MESSAGE,
    REQUIRED_PROFILE_FIELDS,
    CarStatus,
    RentalStatus,
)
from .common import as_datetime, car_from_dict, customer_from_dict, resolve_store, round2

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
SAVE_DETAILS_FAILED = "There was a problem saving your details."


class Step(str, Enum):
    DATES = "dates"
    DETAILS = "details"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"
    CLOSED = "closed"


class Event(str, Enum):
    CHOOSE_DATES = "choose_dates"
    SAVE_DETAILS = "save_details"
    PAY = "pay"
    BACK = "back"
    SUBMIT = "submit"
    CLOSE = "close"


TRANSITIONS: dict[tuple[Step, Event], tuple[Step, ...]] = {
    (Step.DATES, Event.CHOOSE_DATES): (Step.DETAILS, Step.PAYMENT),
    (Step.DETAILS, Event.SAVE_DETAILS): (Step.PAYMENT,),
    (Step.DETAILS, Event.BACK): (Step.DATES,),
    (Step.PAYMENT, Event.PAY): (Step.CONFIRMATION,),
    (Step.PAYMENT, Event.BACK): (Step.DATES,),
    (Step.CONFIRMATION, Event.SUBMIT): (Step.CLOSED,),
}
for _step in Step:
    if _step is not Step.CLOSED:
        TRANSITIONS[(_step, Event.CLOSE)] = (Step.CLOSED,)


@dataclass(frozen=True)
class Quote:
    days: int
    hire_cost: float
    insurance_cost: float
    total_cost: float


def count_days(start: datetime, end: datetime) -> int:
    """Whole days between two instants, rounded up; zero or negative when end <= start."""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def quote(rental_rate: float, tier: str, start, end) -> Quote:
    """
    Price a booking: days x daily rate plus the tier's daily insurance rate x days.
    Raises ValueError for an unknown tier.
    """
    cover = cover_for(tier)
    if cover is None:
        raise ValueError(f"Unknown insurance tier: {tier!r}")
    days = count_days(as_datetime(start), as_datetime(end))
    hire = float(rental_rate) * days
    insurance = cover.cost_for_days(days)
    return Quote(days=days, hire_cost=round2(hire), insurance_cost=round2(insurance),
                 total_cost=round2(hire + insurance))


def validate_details(details: dict) -> dict[str, str]:
    """Field-keyed errors for every required profile field that is missing or blank."""
    return {name: REQUIRED_MESSAGE for name in REQUIRED_PROFILE_FIELDS if is_blank(details.get(name))}


def _card_number_error(value: str) -> Optional[str]:
    return None if (value or "").strip() else "Card number is required"


def _card_name_error(value: str) -> Optional[str]:
    return None if (value or "").strip() else "Name on card is required"


def _expiry_error(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "Expiry date is required"
    if "/" not in value:
        return "Please use MM/YY format"
    return None


def _cvv_error(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "CVV is required"
    if len(value) < 3:
        return "CVV must be at least 3 digits"
    return None


PAYMENT_CHECKS = {
    "card_number": _card_number_error,
    "card_name": _card_name_error,
    "expiry_date": _expiry_error,
    "cvv": _cvv_error,
}


def validate_payment(card_number: str, card_name: str, expiry_date: str, cvv: str) -> dict[str, str]:
    """Run every payment check; all failures are reported together."""
    values = {
        "card_number": card_number,
        "card_name": card_name,
        "expiry_date": expiry_date,
        "cvv": cvv,
    }
    errors = {}
    for name, check in PAYMENT_CHECKS.items():
        msg = check(values[name])
        if msg:
            errors[name] = msg
    return errors


class BookingWorkflow:
    """
    One customer hiring one car. Holds the wizard state between requests
    (see ``to_dict``/``from_dict``) and issues the backend writes.
    """

    def __init__(self, car: dict, identity_id: str, store: Optional[Store] = None):
        self.car = dict(car)
        self.identity_id = identity_id
        self.store = store
        self.rental_id: Optional[str] = None
        self.last_error: Optional[CarHireError] = None
        self._reset()

    # ---------- lifecycle ----------
    @classmethod
    def start(cls, car_id: str, identity_id: str, store: Optional[Store] = None) -> "BookingWorkflow":
        """Load the car and open a fresh workflow for it. Only available cars can be booked."""
        st = resolve_store(store)
        car = st.get_car(car_id)
        if car is None:
            raise CarNotFoundError(f"Error: car with ID '{car_id}' not found")
        if car.get("status") != CarStatus.AVAILABLE:
            raise CarUnavailableError()
        wf = cls(car, identity_id, store=store)
        wf.open()
        return wf

    def _reset(self):
        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        self.step = Step.DATES
        self.tier = InsuranceTier.BASIC
        self.start_date: Optional[datetime] = today
        self.end_date: Optional[datetime] = today + timedelta(days=DEFAULT_BOOKING_DAYS)
        self.details: dict = {}
        self.has_required_details = False
        self.validation_errors: dict[str, str] = {}
        self.card_number = ""
        self.card_name = ""
        self.expiry_date = ""
        self.cvv = ""
        self.card_last4 = ""
        self.payment_errors: dict[str, str] = {}
        self.submitting = False

    def open(self):
        """
        (Re)open the wizard: back to ``dates`` with payment fields, errors and
        previous selections cleared, and the profile fetched again.
        """
        self._reset()
        self.rental_id = None
        self.last_error = None
        st = resolve_store(self.store)
        try:
            profile = st.fetch_customer_profile(self.identity_id)
        except CarHireError as e:
            logger.error("Error fetching customer details for %s: %s", self.identity_id, e)
            profile = None
        if profile:
            self.details = {name: profile.get(name) for name in PROFILE_FIELDS}
            self.has_required_details = customer_from_dict(profile).has_required_details()
        return self

    def close(self):
        self._fire(Event.CLOSE, Step.CLOSED)

    def _fire(self, event: Event, target: Step):
        allowed = TRANSITIONS.get((self.step, event))
        if not allowed or target not in allowed:
            raise IllegalTransitionError(
                f"Error: cannot {event.value} from step '{self.step.value}'"
            )
        logger.debug("Booking %s: %s --%s--> %s", self.car.get("car_id"), self.step.value,
                     event.value, target.value)
        self.step = target

    def back(self):
        self._fire(Event.BACK, Step.DATES)

    # ---------- dates ----------
    @property
    def quote(self) -> Optional[Quote]:
        if self.start_date is None or self.end_date is None or cover_for(self.tier) is None:
            return None
        return quote(self.car.get("rental_rate") or 0, self.tier, self.start_date, self.end_date)

    def choose_dates(self, tier: str, start, end):
        """
        Guard: known tier, both dates parse, end after start.
        Returns (ok, errors).
        """
        if self.step is not Step.DATES:
            raise IllegalTransitionError(f"Error: cannot choose dates from step '{self.step.value}'")
        errors: dict[str, str] = {}

        tier = (tier or "").strip().lower()
        if cover_for(tier) is None:
            errors["insurance_type"] = "Please choose basic, standard or premium cover"

        parsed = {}
        for name, value in (("start_date", start), ("end_date", end)):
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[name] = "Please select a date"
                continue
            try:
                parsed[name] = as_datetime(value)
            except ValueError:
                errors[name] = "Invalid date (YYYY-MM-DD)"

        if len(parsed) == 2 and parsed["end_date"] <= parsed["start_date"]:
            errors["end_date"] = "End date must be after start date"

        self.validation_errors = errors
        if errors:
            logger.debug("Date selection rejected: %s", errors)
            return False, errors

        self.tier = tier
        self.start_date = parsed["start_date"]
        self.end_date = parsed["end_date"]
        self._fire(Event.CHOOSE_DATES, Step.PAYMENT if self.has_required_details else Step.DETAILS)
        return True, {}

    # ---------- details ----------
    def update_detail(self, name: str, value):
        """Edit one profile field; a non-blank value clears that field's error."""
        if name not in PROFILE_FIELDS:
            raise KeyError(name)
        self.details[name] = value
        if not is_blank(value):
            self.validation_errors.pop(name, None)

    def save_details(self, fields: Optional[dict] = None):
        """
        Guard: every required field present and non-blank.
        Side effect: upsert the profile keyed by the caller's identity.
        Returns (ok, errors).
        """
        if self.step is not Step.DETAILS:
            raise IllegalTransitionError(f"Error: cannot save details from step '{self.step.value}'")
        for name, value in (fields or {}).items():
            if name in PROFILE_FIELDS:
                self.details[name] = value

        errors = validate_details(self.details)
        self.validation_errors = errors
        if errors:
            logger.debug("Customer details incomplete: %s", sorted(errors))
            return False, errors

        st = resolve_store(self.store)
        try:
            st.upsert_customer_profile(self.identity_id, self.details)
        except CarHireError as e:
            logger.error("Error saving customer details for %s: %s", self.identity_id, e)
            self.last_error = e
            return False, {"form": SAVE_DETAILS_FAILED}

        self.has_required_details = True
        self._fire(Event.SAVE_DETAILS, Step.PAYMENT)
        return True, {}

    # ---------- payment ----------
    def update_payment(self, name: str, value: str):
        """Edit one card field; its error clears once the value passes its check."""
        check = PAYMENT_CHECKS[name]
        setattr(self, name, value)
        if check(value) is None:
            self.payment_errors.pop(name, None)

    def pay(self, card_number=None, card_name=None, expiry_date=None, cvv=None):
        """
        Guard: all card fields valid. No network call is made; the card is
        never charged. Returns (ok, errors).
        """
        if self.step is not Step.PAYMENT:
            raise IllegalTransitionError(f"Error: cannot pay from step '{self.step.value}'")
        for name, value in (("card_number", card_number), ("card_name", card_name),
                            ("expiry_date", expiry_date), ("cvv", cvv)):
            if value is not None:
                setattr(self, name, value)

        errors = validate_payment(self.card_number, self.card_name, self.expiry_date, self.cvv)
        self.payment_errors = errors
        if errors:
            logger.debug("Payment details rejected: %s", sorted(errors))
            return False, errors

        digits = "".join(ch for ch in self.card_number if ch.isdigit())
        self.card_last4 = digits[-4:]
        # Card number and CVV are not kept past validation
        self.card_number = ""
        self.cvv = ""
        self._fire(Event.PAY, Step.CONFIRMATION)
        return True, {}

    # ---------- confirmation ----------
    def summary(self) -> dict:
        q = self.quote
        car = car_from_dict(self.car)
        return {
            "car_id": car.car_id,
            "car": car.title,
            "daily_rate": car.rental_rate,
            "insurance_type": self.tier,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "days": q.days if q else 0,
            "hire_cost": q.hire_cost if q else 0.0,
            "insurance_cost": q.insurance_cost if q else 0.0,
            "total_cost": q.total_cost if q else 0.0,
            "card_name": self.card_name,
            "card_last4": self.card_last4,
        }

    def submit(self):
        """
        Persist the booking: rental, insurance, payment, then mark the car rented.
        A failed write undoes the earlier ones and leaves the wizard at
        ``confirmation`` so the user can retry.

        ``submitting`` only blocks re-entry within one call and is not kept in
        the session. A repeated submit from a stale session copy is stopped by
        the car availability check and the store's one-active-rental rule.

        Returns:
            (ok: bool, message: str, rental_id: Optional[str])
        """
        if self.step is not Step.CONFIRMATION:
            raise IllegalTransitionError(f"Error: cannot submit from step '{self.step.value}'")
        if self.submitting:
            return False, "Booking is already being submitted", None

        self.submitting = True
        try:
            rental_id = self._write_booking()
        except BookingStepError as e:
            logger.error("Booking submit failed at %s step for car %s: %s",
                         e.step, self.car.get("car_id"), e.cause)
            self.last_error = e
            return False, e.message, None
        finally:
            self.submitting = False

        self.rental_id = rental_id
        self._fire(Event.SUBMIT, Step.CLOSED)
        logger.info("Rental %s booked: car %s for customer %s", rental_id,
                    self.car.get("car_id"), self.identity_id)
        return True, "Your car has been booked successfully.", rental_id

    def _write_booking(self) -> str:
        st = resolve_store(self.store)
        q = self.quote
        car_id = self.car.get("car_id")
        start = self.start_date.isoformat()
        end = self.end_date.isoformat()
        undo = []
        step = "rental"
        try:
            current = st.get_car(car_id)
            if current is None or current.get("status") != CarStatus.AVAILABLE:
                raise CarUnavailableError()
            rental_id = st.insert_rental({
                "car_id": car_id,
                "customer_id": self.identity_id,
                "start_date": start,
                "end_date": end,
                "status": RentalStatus.ACTIVE,
            })
            undo.append(("rental", lambda: st.delete_rental(rental_id)))

            step = "insurance"
            insurance_id = st.insert_insurance({
                "rental_id": rental_id,
                "type": self.tier,
                "cost": q.insurance_cost,
                "start_date": start,
                "end_date": end,
            })
            undo.append(("insurance", lambda: st.delete_insurance(insurance_id)))

            step = "payment"
            payment_id = st.insert_payment({
                "rental_id": rental_id,
                "amount": q.total_cost,
                "date": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                "method": PAYMENT_METHOD_CARD,
                "status": PAYMENT_COMPLETED,
            })
            undo.append(("payment", lambda: st.delete_payment(payment_id)))

            step = "car"
            st.update_car_status(car_id, CarStatus.RENTED)
        except CarHireError as e:
            _compensate(undo)
            raise BookingStepError(step, e) from e
        return rental_id

    # ---------- session round-trip ----------
    def to_dict(self) -> dict:
        """Plain-data snapshot for the Flask session. Card number and CVV are left out."""
        return {
            "car": self.car,
            "identity_id": self.identity_id,
            "step": self.step.value,
            "tier": self.tier,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "details": dict(self.details),
            "has_required_details": self.has_required_details,
            "validation_errors": dict(self.validation_errors),
            "card_name": self.card_name,
            "expiry_date": self.expiry_date,
            "card_last4": self.card_last4,
            "payment_errors": dict(self.payment_errors),
            "rental_id": self.rental_id,
        }

    @classmethod
    def from_dict(cls, data: dict, store: Optional[Store] = None) -> "BookingWorkflow":
        wf = cls(data["car"], data["identity_id"], store=store)
        wf.step = Step(data.get("step") or Step.DATES.value)
        wf.tier = data.get("tier") or InsuranceTier.BASIC
        wf.start_date = as_datetime(data["start_date"]) if data.get("start_date") else None
        wf.end_date = as_datetime(data["end_date"]) if data.get("end_date") else None
        wf.details = dict(data.get("details") or {})
        wf.has_required_details = bool(data.get("has_required_details"))
        wf.validation_errors = dict(data.get("validation_errors") or {})
        wf.card_name = data.get("card_name") or ""
        wf.expiry_date = data.get("expiry_date") or ""
        wf.card_last4 = data.get("card_last4") or ""
        wf.payment_errors = dict(data.get("payment_errors") or {})
        wf.rental_id = data.get("rental_id")
        return wf


def _compensate(undo):
    """Run compensating actions newest first; a failing one is logged and skipped."""
    for name, action in reversed(undo):
        try:
            action()
        except CarHireError as e:
            logger.error("Could not roll back %s write: %s", name, e)
