"""Active gallery filter value object."""

from dataclasses import dataclass
from enum import Enum


class FilterType(str, Enum):
    TAG = "tag"
    LOCATION = "location"


@dataclass(frozen=True)
class Filter:
    """
    One active narrowing criterion.

    ``value`` is what is matched (tag name or location substring), ``label``
    is what the UI shows and ``count`` is the number of photos the filter
    matched when it was suggested.
    """

    type: FilterType
    value: str
    label: str
    count: int = 0

    def same_criterion(self, other: "Filter") -> bool:
        """True when both filters narrow by the same type and value, ignoring case."""
        return self.type == other.type and self.value.lower() == other.value.lower()

    def to_dict(self) -> dict:
        return {"type": self.type.value, "value": self.value, "label": self.label, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict) -> "Filter":
        return cls(
            type=FilterType(data["type"]),
            value=data["value"],
            label=data.get("label") or data["value"],
            count=int(data.get("count", 0)),
        )
