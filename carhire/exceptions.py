"""
Custom exception classes for the car hire web app.

These exceptions provide precise error types that services can catch
to turn backend failures into friendly messages instead of generic 500 errors.
"""


class CarHireError(Exception):
    """Base class for all application errors."""

    default_message = "Error: car hire operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class CarNotFoundError(CarHireError):
    """Raised when a car ID cannot be found in the system."""

    default_message = "Error: car not found"


class CarUnavailableError(CarHireError):
    """Raised when a car that is rented or under maintenance is offered for booking."""

    default_message = "Car is not available"


class CustomerNotFoundError(CarHireError):
    """Raised when a customer profile cannot be found in the system."""

    default_message = "Error: customer not found"


class RentalNotFoundError(CarHireError):
    """Raised when a rental record cannot be found in the system."""

    default_message = "Error: rental not found"


class PersistenceError(CarHireError):
    """Raised by the store when a read or write cannot be completed."""

    default_message = "Error: storage operation failed"


class ConstraintViolation(PersistenceError):
    """Raised when a write would break a storage-level rule (e.g. two active rentals for one car)."""

    default_message = "Error: storage constraint violated"


class IllegalTransitionError(CarHireError):
    """Raised when the booking workflow receives an event its current state does not accept."""

    default_message = "Error: illegal booking step"


class BookingStepError(CarHireError):
    """
    Raised when one of the booking submit writes fails.

    `step` names the failed write (rental, insurance, payment, car) and
    `cause` keeps the underlying store error.
    """

    def __init__(self, step: str, cause: Exception | None = None, message: str | None = None) -> None:
        self.step = step
        self.cause = cause
        super().__init__(message or f"Failed to {STEP_ACTIONS.get(step, step)}")


STEP_ACTIONS = {
    "rental": "create rental",
    "insurance": "create insurance",
    "payment": "record payment",
    "car": "update car status",
}
