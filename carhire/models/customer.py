from dataclasses import dataclass, field, fields

from ..utils.constants import REQUIRED_PROFILE_FIELDS


def is_blank(value) -> bool:
    """A profile value counts as missing when empty or whitespace-only text."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


@dataclass
class Customer:
    """
    Profile row linked one-to-one with an identity record. The identity may
    outlive this row when a profile is deleted.
    """
    customer_id: str
    first_name: str | None = None
    last_name: str | None = None
    licence_number: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    county: str | None = None
    postcode: str | None = None
    date_of_birth: str | None = None
    admin: bool = False
    created_at: str | None = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, d: dict) -> "Customer":
        names = {f.name for f in fields(cls)}
        data = {k: v for k, v in d.items() if k in names}
        data.setdefault("customer_id", d.get("id"))
        return cls(**data)

    def missing_fields(self) -> list[str]:
        """Required fields that are absent or blank."""
        return [name for name in REQUIRED_PROFILE_FIELDS if is_blank(getattr(self, name))]

    def has_required_details(self) -> bool:
        return not self.missing_fields()
