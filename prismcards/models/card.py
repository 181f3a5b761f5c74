from dataclasses import asdict, dataclass, field
from typing import Any
from uuid import uuid4


def new_observation_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class PriceObservation:
    """
    One market valuation of a card.

    Attributes:
        date: ISO timestamp of the observation (UTC, millisecond precision)
        value: Observed price in the card's currency
        id: Generated identifier, independent of the date
        platform: Where the price was observed (eBay, Goldin, ...)
        parallel: Parallel of the comp (Silver, Gold, ...)
        grade: Grade of the comp (PSA 10, Raw, ...)
        serial_number: Serial of the comp (15/99, 1/1, ...)
    """

    date: str
    value: float
    id: str = field(default_factory=new_observation_id)
    platform: str | None = None
    parallel: str | None = None
    grade: str | None = None
    serial_number: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceObservation":
        """Build from a stored dict. Entries written before ids existed get one."""
        return cls(
            date=data["date"],
            value=float(data["value"]),
            id=data.get("id") or new_observation_id(),
            platform=data.get("platform"),
            parallel=data.get("parallel"),
            grade=data.get("grade"),
            serial_number=data.get("serial_number"),
        )


@dataclass
class ValuationResult:
    """Updated history plus the card's derived current value."""

    history: list[PriceObservation]
    current_value: float

    def history_dicts(self) -> list[dict[str, Any]]:
        return [obs.to_dict() for obs in self.history]
