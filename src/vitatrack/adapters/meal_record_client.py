"""HTTP client for the meal record backend."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, tzinfo
from typing import Protocol

import httpx
from pydantic import ValidationError

from vitatrack.adapters.wire_models import (
    CreateFoodResponse,
    MealRecordListResponse,
    MealRecordPayload,
)
from vitatrack.domain.errors import (
    BadRequest,
    BadResponse,
    MissingIdentifier,
    NetworkUnavailable,
)
from vitatrack.domain.records import CreatedRecord, FoodRecord, MealType

_logger = logging.getLogger(__name__)

DEFAULT_AMOUNT = 1.0


class MealRecordClient(Protocol):
    """Interface for the remote food record store."""

    async def fetch(
        self,
        user_id: int,
        day: date | None = None,
        meal_type: MealType | None = None,
    ) -> list[FoodRecord]:
        """Return the user's records, optionally narrowed to a day and meal."""

    async def create(self, user_id: int, record: FoodRecord) -> CreatedRecord:
        """Create a record remotely and return the assigned identifiers."""

    async def update(self, record: FoodRecord) -> None:
        """Overwrite the remote copy of a synced record."""

    async def delete(self, server_id: int) -> None:
        """Delete a remote record by server identifier."""


@dataclass
class HttpxMealRecordClient(MealRecordClient):
    """Meal record client implemented with httpx."""

    base_url: str
    server_origin: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0
    tz: tzinfo = field(default=UTC)

    @classmethod
    def build(
        cls,
        base_url: str,
        server_origin: str,
        timeout: float = 10.0,
        tz: tzinfo = UTC,
    ) -> "HttpxMealRecordClient":
        """Create a meal record client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            server_origin=server_origin.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
            tz=tz,
        )

    async def fetch(
        self,
        user_id: int,
        day: date | None = None,
        meal_type: MealType | None = None,
    ) -> list[FoodRecord]:
        """Fetch meal records for a user."""
        if user_id <= 0:
            raise BadRequest(f"Invalid user id: {user_id}")
        params: dict[str, str] = {}
        if day is not None:
            params["date"] = day.strftime("%Y-%m-%d")
        if meal_type is not None:
            params["meal_type"] = meal_type.value
        response = await self._send(
            "GET", f"{self.base_url}/meal-records/{user_id}", params=params
        )
        try:
            envelope = MealRecordListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BadResponse(
                f"Unreadable meal records payload: {exc}", response.status_code
            ) from exc
        records: list[FoodRecord] = []
        for row in envelope.data:
            record = self._to_record(row)
            if record is not None:
                records.append(record)
        _logger.info("Fetched %s meal records for user %s", len(records), user_id)
        return records

    async def create(self, user_id: int, record: FoodRecord) -> CreatedRecord:
        """Create a food record via POST /foods."""
        payload: dict[str, object] = {
            "name": record.name.strip(),
            "calories": record.calories,
            "unit": record.unit.strip(),
            "date": _format_iso(record.date),
            "user_id": user_id,
            "meal_type": (record.meal_type or MealType.BREAKFAST).value,
            "amount": record.amount if record.amount is not None else DEFAULT_AMOUNT,
        }
        if record.image_url:
            payload["image_url"] = record.image_url
        response = await self._send("POST", f"{self.base_url}/foods", json=payload)
        try:
            ids = CreateFoodResponse.model_validate(response.json()).data
        except (ValueError, ValidationError) as exc:
            raise BadResponse(
                f"Unreadable create response: {exc}", response.status_code
            ) from exc
        if ids.food_id == 0:
            _logger.warning(
                "Backend returned a zero food_id for %s (record id %s)",
                record.local_id,
                ids.id,
            )
        return CreatedRecord(food_id=ids.food_id, record_id=ids.id)

    async def update(self, record: FoodRecord) -> None:
        """Update a food record via PUT /foods/{server_id}."""
        if record.server_id is None:
            raise MissingIdentifier(f"Record {record.local_id} has no server id")
        payload: dict[str, object] = {
            "name": record.name.strip(),
            "calories": record.calories,
            "unit": record.unit.strip(),
            "amount": record.amount if record.amount is not None else DEFAULT_AMOUNT,
        }
        if record.image_url:
            payload["image_url"] = record.image_url
        await self._send("PUT", f"{self.base_url}/foods/{record.server_id}", json=payload)

    async def delete(self, server_id: int) -> None:
        """Delete a meal record via DELETE /meal-records/{id}."""
        await self._send("DELETE", f"{self.base_url}/meal-records/{server_id}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.http_client.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except httpx.TransportError as exc:
            raise NetworkUnavailable(f"{method} {url} failed: {exc}") from exc
        if not response.is_success:
            raise BadResponse(
                f"{method} {url} returned {response.status_code}",
                response.status_code,
            )
        return response

    def _to_record(self, row: MealRecordPayload) -> FoodRecord | None:
        try:
            return FoodRecord(
                server_id=row.food_id,
                name=row.name,
                calories=row.calories,
                unit=row.unit,
                amount=row.amount if row.amount and row.amount > 0 else None,
                meal_type=_parse_meal_type(row.meal_type),
                date=self._parse_record_date(row.record_date),
                image_url=self.normalize_image_url(row.image_url),
            )
        except BadRequest as exc:
            _logger.warning("Skipping invalid meal record %s: %s", row.id, exc)
            return None

    def _parse_record_date(self, value: str) -> datetime:
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            _logger.warning("Unparsable record_date %r, using current time", value)
            return datetime.now(tz=self.tz)
        return parsed.replace(tzinfo=self.tz)

    def normalize_image_url(self, value: str | None) -> str | None:
        """Return an absolute image URL, prefixing relative paths with the origin."""
        if not value:
            return None
        if value.startswith(("http://", "https://")):
            return value
        if not value.startswith("/"):
            value = f"/{value}"
        return f"{self.server_origin}{value}"


def _parse_meal_type(value: str | None) -> MealType:
    if value:
        try:
            return MealType(value.strip().lower())
        except ValueError:
            _logger.warning("Unknown meal_type %r, defaulting to breakfast", value)
    return MealType.BREAKFAST


def _format_iso(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
