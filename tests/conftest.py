"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, tzinfo
from uuid import uuid4

import pytest

from vitatrack.adapters.meal_record_client import MealRecordClient
from vitatrack.adapters.progress_client import ProgressClient
from vitatrack.config import Settings
from vitatrack.containers import AppContainer
from vitatrack.domain.errors import RemoteStoreError
from vitatrack.domain.progress import NutrientTotals
from vitatrack.domain.records import CreatedRecord, FoodRecord, MealType
from vitatrack.services.progress import ProgressService
from vitatrack.services.records import RecordStore
from vitatrack.services.sessions import SessionGate

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def fixed_clock(tz: tzinfo) -> datetime:
    return NOW.astimezone(tz)


def make_record(  # noqa: PLR0913
    name: str = "Apple",
    calories: int = 52,
    meal_type: MealType | None = MealType.BREAKFAST,
    day: datetime = NOW,
    server_id: int | None = None,
    amount: float | None = None,
) -> FoodRecord:
    return FoodRecord(
        name=name,
        calories=calories,
        meal_type=meal_type,
        date=day,
        server_id=server_id,
        amount=amount,
    )


@dataclass
class FakeMealRecordClient(MealRecordClient):
    """In-memory remote store that can hold calls open or fail them."""

    stored: list[FoodRecord] = field(default_factory=list)
    fail_fetch: RemoteStoreError | None = None
    fail_create: RemoteStoreError | None = None
    fail_update: RemoteStoreError | None = None
    fail_delete: RemoteStoreError | None = None
    hold_creates: bool = False
    hold_fetches: bool = False
    hold_updates: bool = False
    hold_deletes: bool = False
    fresh_local_ids: bool = True
    next_food_id: int = 500
    fetch_calls: list[tuple[int, date | None]] = field(default_factory=list)
    created: list[FoodRecord] = field(default_factory=list)
    updated: list[FoodRecord] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)
    held_creates: list[asyncio.Future] = field(default_factory=list)
    held_fetches: list[asyncio.Future] = field(default_factory=list)
    held_updates: list[asyncio.Future] = field(default_factory=list)
    held_deletes: list[asyncio.Future] = field(default_factory=list)

    async def fetch(
        self,
        user_id: int,
        day: date | None = None,
        meal_type: MealType | None = None,
    ) -> list[FoodRecord]:
        self.fetch_calls.append((user_id, day))
        if self.hold_fetches:
            future = asyncio.get_running_loop().create_future()
            self.held_fetches.append(future)
            return await future
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return [
            replace(record, local_id=uuid4()) if self.fresh_local_ids else record
            for record in self.stored
            if day is None or record.date.date() == day
        ]

    async def create(self, user_id: int, record: FoodRecord) -> CreatedRecord:
        self.created.append(record)
        if self.hold_creates:
            future = asyncio.get_running_loop().create_future()
            self.held_creates.append(future)
            return await future
        if self.fail_create is not None:
            raise self.fail_create
        self.next_food_id += 1
        return CreatedRecord(food_id=self.next_food_id, record_id=self.next_food_id)

    async def update(self, record: FoodRecord) -> None:
        if self.hold_updates:
            await self._hold(self.held_updates)
        if self.fail_update is not None:
            raise self.fail_update
        self.updated.append(record)

    async def delete(self, server_id: int) -> None:
        if self.hold_deletes:
            await self._hold(self.held_deletes)
        if self.fail_delete is not None:
            raise self.fail_delete
        self.deleted.append(server_id)

    async def wait_for_held_creates(self, count: int) -> None:
        await self.wait_for_held(self.held_creates, count)

    async def wait_for_held(self, held: list[asyncio.Future], count: int) -> None:
        while len(held) < count:
            await asyncio.sleep(0)

    async def _hold(self, held: list[asyncio.Future]) -> None:
        future = asyncio.get_running_loop().create_future()
        held.append(future)
        await future


@dataclass
class FakeProgressClient(ProgressClient):
    """Progress client returning fixed totals."""

    intake: NutrientTotals = field(
        default_factory=lambda: NutrientTotals(
            vegetables=2, fruits=1, grains=3, meat=1, dairy=1, extras=0
        )
    )
    goals: NutrientTotals = field(
        default_factory=lambda: NutrientTotals(
            vegetables=4, fruits=2, grains=6, meat=2, dairy=2, extras=1
        )
    )
    calls: list[tuple[str, int]] = field(default_factory=list)

    async def get_daily_intake(self, user_id: int, day: date) -> NutrientTotals:
        self.calls.append(("intake", user_id))
        return self.intake

    async def get_goal_settings(self, user_id: int) -> NutrientTotals:
        self.calls.append(("goals", user_id))
        return self.goals


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="http://backend.test/api",
        server_origin="http://backend.test",
        timezone="UTC",
        environment="test",
    )


@pytest.fixture
def record_client() -> FakeMealRecordClient:
    return FakeMealRecordClient()


@pytest.fixture
def progress_client() -> FakeProgressClient:
    return FakeProgressClient()


@pytest.fixture
def record_store(record_client: FakeMealRecordClient) -> RecordStore:
    return RecordStore(client=record_client, tz=UTC, clock=fixed_clock)


@pytest.fixture
def session_gate(record_store: RecordStore) -> SessionGate:
    return SessionGate(record_store=record_store)


@pytest.fixture
def container(
    settings: Settings,
    record_store: RecordStore,
    session_gate: SessionGate,
    progress_client: FakeProgressClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        record_store=record_store,
        session_gate=session_gate,
        progress_service=ProgressService(progress_client),
        close_resources=close_resources,
    )
