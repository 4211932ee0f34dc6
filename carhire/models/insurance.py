from dataclasses import dataclass

from ..utils.constants import InsuranceTier, TIER_DAILY_RATES


@dataclass
class InsuranceCover:
    """
    Base insurance cover attached to one rental. Subclasses fix the daily rate
    for their tier; the cost is always rate x days with no minimum.
    """
    tier: str
    daily_rate: float

    def cost_for_days(self, days: int) -> float:
        return self.daily_rate * days


class BasicCover(InsuranceCover):
    def __init__(self) -> None:
        super().__init__(InsuranceTier.BASIC, TIER_DAILY_RATES[InsuranceTier.BASIC])


class StandardCover(InsuranceCover):
    def __init__(self) -> None:
        super().__init__(InsuranceTier.STANDARD, TIER_DAILY_RATES[InsuranceTier.STANDARD])


class PremiumCover(InsuranceCover):
    def __init__(self) -> None:
        super().__init__(InsuranceTier.PREMIUM, TIER_DAILY_RATES[InsuranceTier.PREMIUM])


_COVERS = {
    InsuranceTier.BASIC: BasicCover,
    InsuranceTier.STANDARD: StandardCover,
    InsuranceTier.PREMIUM: PremiumCover,
}


def cover_for(tier: str | None) -> InsuranceCover | None:
    """Return the cover for a tier name, or None for an unknown tier."""
    cls = _COVERS.get((tier or "").strip().lower())
    return cls() if cls else None
