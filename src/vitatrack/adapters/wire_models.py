"""Pydantic models for the meal record backend payloads."""

from pydantic import BaseModel, StrictInt


class MealRecordPayload(BaseModel):
    """One row of the meal-records listing."""

    id: str | int
    food_id: int
    name: str
    calories: int
    unit: str = "g"
    amount: float | None = None
    meal_type: str | None = None
    record_date: str
    image_url: str | None = None


class MealRecordListResponse(BaseModel):
    """Envelope returned by the meal-records listing."""

    message: str | None = None
    data: list[MealRecordPayload]


class CreatedIds(BaseModel):
    """Identifiers assigned by the backend on create."""

    food_id: StrictInt
    id: StrictInt


class CreateFoodResponse(BaseModel):
    """Envelope returned by the food creation endpoint."""

    data: CreatedIds
