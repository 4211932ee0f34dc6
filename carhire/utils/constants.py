# carhire/utils/constants.py

"""
Global constants for statuses, insurance tiers and required profile fields.
These constants are imported by both models and services.
"""

# Date format (used for booking form start/end)
DATE_FMT = "%Y-%m-%d"


class CarStatus:
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"


class RentalStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InsuranceTier:
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


CAR_STATUSES = (CarStatus.AVAILABLE, CarStatus.RENTED, CarStatus.MAINTENANCE)
RENTAL_STATUSES = (RentalStatus.ACTIVE, RentalStatus.COMPLETED, RentalStatus.CANCELLED)

# Per-day insurance rates by tier
TIER_DAILY_RATES = {
    InsuranceTier.BASIC: 15,
    InsuranceTier.STANDARD: 25,
    InsuranceTier.PREMIUM: 40,
}

# Statuses that release the rented car when an admin moves a rental into them
CLOSING_RENTAL_STATES = {RentalStatus.COMPLETED, RentalStatus.CANCELLED}

REQUIRED_PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "licence_number",
    "address_line1",
    "city",
    "county",
    "postcode",
    "date_of_birth",
)

PROFILE_FIELDS = REQUIRED_PROFILE_FIELDS + ("address_line2",)

REQUIRED_MESSAGE = "This field is required."

PAYMENT_METHOD_CARD = "card"
PAYMENT_COMPLETED = "completed"

# Default booking window shown when the wizard opens
DEFAULT_BOOKING_DAYS = 3
