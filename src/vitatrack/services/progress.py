"""Daily nutrition progress service."""

from dataclasses import dataclass
from datetime import date

from vitatrack.adapters.progress_client import ProgressClient
from vitatrack.domain.progress import (
    NutrientTotals,
    calculate_total_progress,
    motivational_message,
)


@dataclass(frozen=True)
class DailyProgress:
    """Completion ratio for a day with the numbers behind it."""

    day: date
    intake: NutrientTotals
    goals: NutrientTotals
    ratio: float

    @property
    def message(self) -> str:
        return motivational_message(self.ratio)


@dataclass
class ProgressService:
    """Reduces intake and goal totals to a single completion ratio."""

    client: ProgressClient

    async def get_progress(self, user_id: int, day: date) -> DailyProgress:
        """Fetch intake and goals and compute the day's completion."""
        intake = await self.client.get_daily_intake(user_id, day)
        goals = await self.client.get_goal_settings(user_id)
        return DailyProgress(
            day=day,
            intake=intake,
            goals=goals,
            ratio=calculate_total_progress(intake, goals),
        )
