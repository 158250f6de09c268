"""Pydantic models for the local control API."""

from datetime import date, datetime

from pydantic import BaseModel

from vitatrack.domain.records import MealType


class SessionRequest(BaseModel):
    """Login payload supplied by the session layer."""

    user_id: int
    username: str | None = None


class RecordRequest(BaseModel):
    """Food record fields entered by the user."""

    name: str
    calories: int
    unit: str = "g"
    amount: float | None = None
    meal_type: MealType | None = None
    date: datetime | None = None
    image_url: str | None = None


class DateRequest(BaseModel):
    """Target day for date navigation."""

    day: date


class RecordUpdateRequest(BaseModel):
    """Changes to a stored record.

    Omitted fields keep their current value. ``amount``, ``meal_type`` and
    ``image_url`` are cleared by sending ``null``.
    """

    name: str | None = None
    calories: int | None = None
    unit: str | None = None
    amount: float | None = None
    meal_type: MealType | None = None
    date: datetime | None = None
    image_url: str | None = None
