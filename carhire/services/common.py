"""Shared service helpers and factories."""

from datetime import date, datetime, time, timezone
from typing import Optional

from ..models.car import Car
from ..models.customer import Customer
from ..models.store import Store
from ..utils.constants import DATE_FMT


def _store() -> Store:
    """Get the singleton store instance."""
    return Store.instance()


def resolve_store(store: Optional[Store] = None) -> Store:
    """Prefer an injected store (tests), else the singleton."""
    return store if store is not None else _store()


# -------- date & math helpers --------
def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD string to date; raise ValueError on bad input."""
    return datetime.strptime((s or "").strip(), DATE_FMT).date()


def as_datetime(x) -> datetime:
    """
    Coerce a date-like to an aware UTC datetime.
    Accepts date, datetime, 'YYYY-MM-DD' or a full ISO-8601 string.
    """
    if isinstance(x, datetime):
        return x if x.tzinfo else x.replace(tzinfo=timezone.utc)
    if isinstance(x, date):
        return datetime.combine(x, time.min, tzinfo=timezone.utc)
    if isinstance(x, str):
        s = x.strip()
        if "T" not in s and " " not in s:
            return as_datetime(parse_date(s))
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        return as_datetime(dt)
    raise ValueError(f"Unsupported date: {x!r}")


def round2(x: float) -> float:
    return round(float(x), 2)


def to_float_safe(value) -> Optional[float]:
    """Safely convert to float; return None if invalid."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int_safe(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _lc(s):
    """Safe lowercase for case-insensitive compare."""
    return (s or "").lower()


# -------- dict -> rich model mappers --------
def car_from_dict(d: Optional[dict]) -> Optional[Car]:
    """Map a stored car dict to a rich car object."""
    if not d:
        return None
    return Car(
        car_id=d.get("car_id") or d.get("id"),
        location_id=d.get("location_id"),
        make=d.get("make") or "",
        model=d.get("model") or "",
        year=int(d.get("year") or 0),
        license_plate=d.get("license_plate") or "",
        colour=d.get("colour") or "",
        rental_rate=float(d.get("rental_rate") or 0.0),
        status=d.get("status") or "available",
    )


def customer_from_dict(d: Optional[dict]) -> Optional[Customer]:
    """Map a stored customer dict to a rich customer object."""
    if not d:
        return None
    return Customer.from_dict(d)
