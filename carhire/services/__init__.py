from .auth_service import AuthService, SessionContext
from .booking import BookingWorkflow
from .car_service import CarService
from .customer_service import CustomerService
from .rental_service import RentalService

__all__ = [
    "AuthService",
    "SessionContext",
    "BookingWorkflow",
    "CarService",
    "CustomerService",
    "RentalService",
]
