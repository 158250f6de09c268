"""HTTP client for daily intake and goal settings."""

from dataclasses import dataclass
from datetime import date
from typing import Protocol

import httpx

from vitatrack.domain.errors import BadRequest, BadResponse, NetworkUnavailable
from vitatrack.domain.progress import NutrientTotals


class ProgressClient(Protocol):
    """Interface for the intake and goal endpoints."""

    async def get_daily_intake(self, user_id: int, day: date) -> NutrientTotals:
        """Return what the user consumed on a day."""

    async def get_goal_settings(self, user_id: int) -> NutrientTotals:
        """Return the user's daily targets."""


@dataclass
class HttpxProgressClient(ProgressClient):
    """Progress client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 10.0) -> "HttpxProgressClient":
        """Create a progress client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def get_daily_intake(self, user_id: int, day: date) -> NutrientTotals:
        """Fetch intake totals via GET /daily_intake."""
        payload = await self._get_json(
            "daily_intake",
            {"userId": str(user_id), "date": day.strftime("%Y-%m-%d")},
            user_id,
        )
        return NutrientTotals.from_payload(payload)

    async def get_goal_settings(self, user_id: int) -> NutrientTotals:
        """Fetch goal totals via GET /goal_settings."""
        payload = await self._get_json("goal_settings", {"userId": str(user_id)}, user_id)
        return NutrientTotals.from_payload(payload)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _get_json(
        self, path: str, params: dict[str, str], user_id: int
    ) -> dict[str, object]:
        if user_id <= 0:
            raise BadRequest(f"Invalid user id: {user_id}")
        url = f"{self.base_url}/{path}"
        try:
            response = await self.http_client.get(
                url, params=params, timeout=self.timeout
            )
        except httpx.TransportError as exc:
            raise NetworkUnavailable(f"GET {url} failed: {exc}") from exc
        if not response.is_success:
            raise BadResponse(f"GET {url} returned {response.status_code}", response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise BadResponse(f"GET {url} returned invalid JSON", response.status_code) from exc
        if not isinstance(payload, dict):
            raise BadResponse(f"GET {url} returned a non-object body", response.status_code)
        return payload
