from dataclasses import dataclass


@dataclass
class Car:
    """
    Car on the storefront. The Store keeps raw dicts; we wrap them into a rich
    object when pricing a booking.
    """
    car_id: str
    location_id: str
    make: str
    model: str
    year: int
    license_plate: str
    colour: str
    rental_rate: float  # flat price per day
    status: str  # "available" | "rented" | "maintenance"

    @property
    def title(self) -> str:
        return f"{self.year} {self.make} {self.model}"

