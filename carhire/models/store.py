import logging
import os
import pickle
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import (
    CarNotFoundError,
    ConstraintViolation,
    CustomerNotFoundError,
    PersistenceError,
    RentalNotFoundError,
)
from ..utils.constants import (
    CAR_STATUSES,
    PROFILE_FIELDS,
    RENTAL_STATUSES,
    RentalStatus,
)

logger = logging.getLogger(__name__)

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"

TABLES = ("identities", "customers", "locations", "cars", "rentals", "insurance", "payments")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Store:
    """
    Persistence gateway: relational-style tables kept as dicts of row dicts,
    snapshotted to a pickle file after every write.

    Reads hand back copies so callers only change data through the write
    methods. Every failure surfaces as a PersistenceError (or a not-found
    error for a missing key).
    """

    _inst = None
    _inst_lock = threading.Lock()

    def __init__(self, path: str | os.PathLike | None = None):
        self.path = str(path or DEFAULT_DATA_PATH)
        self.identities: dict[str, dict] = {}
        self.customers: dict[str, dict] = {}
        self.locations: dict[str, dict] = {}
        self.cars: dict[str, dict] = {}
        self.rentals: dict[str, dict] = {}
        self.insurance: dict[str, dict] = {}
        self.payments: dict[str, dict] = {}
        self._rw = threading.RLock()

        logger.info("Store using file: %s", self.path)
        self._load()

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None):
        """Return the global singleton instance of Store."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path or DEFAULT_DATA_PATH)
        return cls._inst

    @classmethod
    def use(cls, store: "Store | None"):
        """Replace the global instance (app factory and tests)."""
        with cls._inst_lock:
            cls._inst = store
        return store

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            logger.warning("Store load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict):
            for name in TABLES:
                setattr(self, name, data.get(name, {}) or {})
            logger.info(
                "Store loaded: %s",
                ", ".join(f"{name}={len(getattr(self, name))}" for name in TABLES),
            )
        else:
            # Incompatible data format: back up the old file and start empty
            bak = self.path + ".bak"
            try:
                os.replace(self.path, bak)
                logger.warning("Incompatible store (%s); backed up to %s. Starting empty.",
                               type(data).__name__, bak)
            except OSError as e:
                logger.error("Store backup failed: %s", e)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        payload = {name: getattr(self, name) for name in TABLES}
        tmp = self.path + ".tmp"
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp, "wb") as f:
                pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"Error: could not write {self.path}: {e}") from e

    @contextmanager
    def _writing(self, *tables):
        """
        Hold the lock for one write. The named tables are rolled back unless
        the dump succeeds.
        """
        with self._rw:
            saved = {name: {k: dict(v) for k, v in getattr(self, name).items()} for name in tables}
            try:
                yield
                self._dump()
            except Exception:
                for name, rows in saved.items():
                    setattr(self, name, rows)
                raise

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            logger.debug("Saving store to %s", self.path)
            self._dump()

    def clear(self):
        """Drop every row in every table."""
        with self._rw:
            for name in TABLES:
                getattr(self, name).clear()
            self._dump()

    @staticmethod
    def _new_row(key: str, data: dict) -> dict:
        row = dict(data)
        row[key] = str(uuid.uuid4())
        row["created_at"] = _now()
        return row

    # ---------- Identities ----------
    def find_identity(self, email: str) -> dict | None:
        """Find an identity record by e-mail (case-insensitive)."""
        email = (email or "").strip().lower()
        for ident in self.identities.values():
            if ident["email"] == email:
                return dict(ident)
        return None

    def get_identity(self, identity_id: str) -> dict | None:
        ident = self.identities.get(identity_id)
        return dict(ident) if ident else None

    def create_identity(self, email: str, password_hash: str) -> str:
        """Create a login credential and return its ID."""
        with self._writing("identities"):
            if self.find_identity(email):
                raise ConstraintViolation("Error: e-mail already registered")
            row = self._new_row("identity_id", {
                "email": email.strip().lower(),
                "password_hash": password_hash,
            })
            self.identities[row["identity_id"]] = row
            return row["identity_id"]

    # ---------- Customers ----------
    def fetch_customer_profile(self, identity_id: str) -> dict | None:
        """Return the profile row for an identity, or None when it has none."""
        row = self.customers.get(identity_id)
        return dict(row) if row else None

    def upsert_customer_profile(self, identity_id: str, fields: dict) -> dict:
        """Insert or update the profile keyed by the identity ID; return the stored row."""
        with self._writing("customers"):
            row = self.customers.get(identity_id)
            if row is None:
                row = {
                    "customer_id": identity_id,
                    "created_at": _now(),
                    "admin": False,
                    **{name: None for name in PROFILE_FIELDS},
                }
            row = dict(row)
            for name in PROFILE_FIELDS:
                if name in fields:
                    row[name] = fields[name]
            if "admin" in fields:
                row["admin"] = bool(fields["admin"])
            self.customers[identity_id] = row
            return dict(row)

    def list_customers(self) -> list[dict]:
        rows = [dict(c) for c in self.customers.values()]
        rows.sort(key=lambda c: c.get("created_at") or "", reverse=True)
        return rows

    def delete_customer_profile(self, customer_id: str) -> None:
        """Remove the profile row only; the identity record is kept."""
        with self._writing("customers"):
            if customer_id not in self.customers:
                raise CustomerNotFoundError()
            del self.customers[customer_id]

    # ---------- Locations ----------
    def create_location(self, data: dict) -> str:
        with self._writing("locations"):
            row = self._new_row("location_id", {
                "name": data.get("name", ""),
                "address_line1": data.get("address_line1", ""),
                "address_line2": data.get("address_line2", ""),
                "city": data.get("city", ""),
                "county": data.get("county", ""),
                "postcode": data.get("postcode", ""),
                "phone_number": data.get("phone_number", ""),
            })
            self.locations[row["location_id"]] = row
            return row["location_id"]

    def get_location(self, location_id: str) -> dict | None:
        row = self.locations.get(location_id)
        return dict(row) if row else None

    def list_locations(self) -> list[dict]:
        return sorted((dict(x) for x in self.locations.values()), key=lambda x: x.get("name") or "")

    # ---------- Cars ----------
    def create_car(self, data: dict) -> str:
        """Create a new car record and return its ID."""
        status = data.get("status") or "available"
        if status not in CAR_STATUSES:
            raise ConstraintViolation(f"Error: invalid car status {status!r}")
        with self._writing("cars"):
            row = self._new_row("car_id", {
                "location_id": data.get("location_id"),
                "make": data.get("make", ""),
                "model": data.get("model", ""),
                "year": int(data.get("year") or 0),
                "license_plate": data.get("license_plate", ""),
                "colour": data.get("colour", ""),
                "rental_rate": float(data.get("rental_rate") or 0),
                "status": status,
            })
            self.cars[row["car_id"]] = row
            return row["car_id"]

    def get_car(self, car_id: str) -> dict | None:
        row = self.cars.get(str(car_id))
        return dict(row) if row else None

    def list_cars(self, status: str | None = None) -> list[dict]:
        rows = [dict(c) for c in self.cars.values() if status is None or c.get("status") == status]
        rows.sort(key=lambda c: c.get("created_at") or "", reverse=True)
        return rows

    def update_car(self, car_id: str, updates: dict) -> None:
        """Update car attributes."""
        if "status" in updates and updates["status"] not in CAR_STATUSES:
            raise ConstraintViolation(f"Error: invalid car status {updates['status']!r}")
        with self._writing("cars"):
            if car_id not in self.cars:
                raise CarNotFoundError()
            self.cars[car_id].update({k: v for k, v in updates.items() if v is not None})

    def update_car_status(self, car_id: str, status: str) -> None:
        self.update_car(car_id, {"status": status})

    def batch_update_car_status(self, car_ids, status: str) -> None:
        """Set the same status on several cars in one write."""
        if status not in CAR_STATUSES:
            raise ConstraintViolation(f"Error: invalid car status {status!r}")
        car_ids = list(car_ids)
        with self._writing("cars"):
            missing = [cid for cid in car_ids if cid not in self.cars]
            if missing:
                raise CarNotFoundError(f"Error: cars not found: {', '.join(missing)}")
            for cid in car_ids:
                self.cars[cid]["status"] = status

    def delete_car(self, car_id: str) -> None:
        with self._writing("cars"):
            if car_id not in self.cars:
                raise CarNotFoundError()
            del self.cars[car_id]

    # ---------- Rentals ----------
    def _active_rental_for_car(self, car_id: str, exclude: str | None = None) -> dict | None:
        for r in self.rentals.values():
            if r["rental_id"] == exclude:
                continue
            if r.get("car_id") == car_id and r.get("status") == RentalStatus.ACTIVE:
                return r
        return None

    def insert_rental(self, fields: dict) -> str:
        """
        Create a rental. At most one active rental may exist per car; a second
        one raises ConstraintViolation.
        """
        status = fields.get("status") or RentalStatus.ACTIVE
        if status not in RENTAL_STATUSES:
            raise ConstraintViolation(f"Error: invalid rental status {status!r}")
        with self._writing("rentals"):
            if status == RentalStatus.ACTIVE and self._active_rental_for_car(fields.get("car_id")):
                raise ConstraintViolation("Error: car already has an active rental")
            row = self._new_row("rental_id", {
                "car_id": fields.get("car_id"),
                "customer_id": fields.get("customer_id"),
                "start_date": fields.get("start_date"),
                "end_date": fields.get("end_date"),
                "status": status,
            })
            self.rentals[row["rental_id"]] = row
            return row["rental_id"]

    def get_rental(self, rental_id: str) -> dict | None:
        row = self.rentals.get(rental_id)
        return dict(row) if row else None

    def list_rentals(self, customer_id: str | None = None, status: str | None = None) -> list[dict]:
        rows = [
            dict(r) for r in self.rentals.values()
            if (customer_id is None or r.get("customer_id") == customer_id)
            and (status is None or r.get("status") == status)
        ]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return rows

    def list_active_rentals_for_customer(self, customer_id: str) -> list[dict]:
        """[{rental_id, car_id}] for the customer's active rentals."""
        return [
            {"rental_id": r["rental_id"], "car_id": r["car_id"]}
            for r in self.rentals.values()
            if r.get("customer_id") == customer_id and r.get("status") == RentalStatus.ACTIVE
        ]

    def update_rental(self, rental_id: str, updates: dict) -> None:
        """Update an existing rental by ID."""
        status = updates.get("status")
        if status is not None and status not in RENTAL_STATUSES:
            raise ConstraintViolation(f"Error: invalid rental status {status!r}")
        with self._writing("rentals"):
            row = self.rentals.get(rental_id)
            if row is None:
                raise RentalNotFoundError()
            if (status == RentalStatus.ACTIVE and row.get("status") != RentalStatus.ACTIVE
                    and self._active_rental_for_car(row.get("car_id"), exclude=rental_id)):
                raise ConstraintViolation("Error: car already has an active rental")
            row.update({k: v for k, v in updates.items() if v is not None})

    def batch_update_rental_status(self, rental_ids, status: str) -> None:
        if status not in RENTAL_STATUSES:
            raise ConstraintViolation(f"Error: invalid rental status {status!r}")
        rental_ids = list(rental_ids)
        with self._writing("rentals"):
            missing = [rid for rid in rental_ids if rid not in self.rentals]
            if missing:
                raise RentalNotFoundError(f"Error: rentals not found: {', '.join(missing)}")
            for rid in rental_ids:
                self.rentals[rid]["status"] = status

    def delete_rental(self, rental_id: str) -> None:
        with self._writing("rentals"):
            if rental_id not in self.rentals:
                raise RentalNotFoundError()
            del self.rentals[rental_id]

    # ---------- Insurance & payments ----------
    def insert_insurance(self, fields: dict) -> str:
        with self._writing("insurance"):
            if fields.get("rental_id") not in self.rentals:
                raise RentalNotFoundError()
            row = self._new_row("insurance_id", {
                "rental_id": fields["rental_id"],
                "type": fields.get("type"),
                "cost": float(fields.get("cost") or 0),
                "start_date": fields.get("start_date"),
                "end_date": fields.get("end_date"),
            })
            self.insurance[row["insurance_id"]] = row
            return row["insurance_id"]

    def insurance_for_rental(self, rental_id: str) -> dict | None:
        for row in self.insurance.values():
            if row.get("rental_id") == rental_id:
                return dict(row)
        return None

    def delete_insurance(self, insurance_id: str) -> None:
        with self._writing("insurance"):
            self.insurance.pop(insurance_id, None)

    def insert_payment(self, fields: dict) -> str:
        with self._writing("payments"):
            if fields.get("rental_id") not in self.rentals:
                raise RentalNotFoundError()
            row = self._new_row("payment_id", {
                "rental_id": fields["rental_id"],
                "amount": float(fields.get("amount") or 0),
                "date": fields.get("date") or _now(),
                "method": fields.get("method"),
                "status": fields.get("status"),
            })
            self.payments[row["payment_id"]] = row
            return row["payment_id"]

    def payment_for_rental(self, rental_id: str) -> dict | None:
        for row in self.payments.values():
            if row.get("rental_id") == rental_id:
                return dict(row)
        return None

    def delete_payment(self, payment_id: str) -> None:
        with self._writing("payments"):
            self.payments.pop(payment_id, None)

