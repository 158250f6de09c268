"""Domain models for food records."""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import StrEnum
from uuid import UUID, uuid4

from vitatrack.domain.errors import BadRequest


class MealType(StrEnum):
    """Meal slot a record belongs to."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class FoodRecord:
    """One nutrition entry with a local and an optional server identity.

    ``local_id`` is generated on the client and keys the record in memory.
    ``server_id`` stays ``None`` until the backend has accepted the record.
    """

    name: str
    calories: int
    date: datetime
    unit: str = "g"
    amount: float | None = None
    meal_type: MealType | None = None
    image_url: str | None = None
    server_id: int | None = None
    local_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise BadRequest("Record name must not be empty")
        if self.calories < 0:
            raise BadRequest(f"Calories must be non-negative, got {self.calories}")
        if self.amount is not None and self.amount <= 0:
            raise BadRequest(f"Amount must be positive, got {self.amount}")

    @property
    def is_synced(self) -> bool:
        """Whether the backend has assigned an identifier."""
        return self.server_id is not None


@dataclass(frozen=True)
class CreatedRecord:
    """Identifiers returned by the backend for a created record."""

    food_id: int
    record_id: int


def empty_meal_counts() -> dict[MealType, int]:
    """Return a count mapping with every meal type at zero."""
    return {meal_type: 0 for meal_type in MealType}


def calendar_day(value: datetime, tz: tzinfo | None = None) -> date:
    """Return the calendar day of a timestamp, in ``tz`` when it is aware."""
    if value.tzinfo is None or tz is None:
        return value.date()
    return value.astimezone(tz).date()


def describe_day(day: date, today: date) -> str:
    """Return a short human label for a day relative to today."""
    delta = (day - today).days
    if delta == 0:
        return "Today"
    if delta == -1:
        return "Yesterday"
    if delta == 1:
        return "Tomorrow"
    return f"{day.strftime('%b')} {day.day}, {day.year}"
