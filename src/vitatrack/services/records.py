"""Local-first food record store.

The store keeps the records of one user and one calendar day in memory. Adds
are applied to the collection before the backend sees them and reconciled by
``local_id`` once the create call returns; updates and deletes are applied
only after the backend confirms them.

All mutations run on the event loop that owns the store, synchronously
between awaits. Every result that arrives after an await is checked against
the session epoch (and, for loads, the load sequence) before it touches the
collection.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta, tzinfo
from uuid import UUID

from vitatrack.adapters.meal_record_client import MealRecordClient
from vitatrack.domain.errors import BadRequest, NoServerId, NoUser, RemoteStoreError
from vitatrack.domain.records import (
    CreatedRecord,
    FoodRecord,
    MealType,
    calendar_day,
    describe_day,
    empty_meal_counts,
)
from vitatrack.domain.sessions import UserSession

_logger = logging.getLogger(__name__)


def _now(tz: tzinfo) -> datetime:
    return datetime.now(tz=tz)


@dataclass
class RecordStore:
    """In-memory source of truth for the selected day's food records."""

    client: MealRecordClient
    tz: tzinfo = UTC
    clock: Callable[[tzinfo], datetime] = field(default=_now)
    _records: list[FoodRecord] = field(default_factory=list, init=False)
    _meal_counts: dict[MealType, int] = field(
        default_factory=empty_meal_counts, init=False
    )
    _selected_date: datetime | None = field(default=None, init=False)
    _session: UserSession | None = field(default=None, init=False)
    _epoch: int = field(default=0, init=False)
    _load_seq: int = field(default=0, init=False)
    _pending: set[asyncio.Task] = field(default_factory=set, init=False)

    @property
    def records(self) -> list[FoodRecord]:
        """Snapshot of the collection in load/add order."""
        return list(self._records)

    @property
    def meal_counts(self) -> dict[MealType, int]:
        """Per-meal counts for the selected day."""
        return dict(self._meal_counts)

    @property
    def selected_date(self) -> datetime:
        """The day currently in view."""
        if self._selected_date is None:
            self._selected_date = self.clock(self.tz)
        return self._selected_date

    @property
    def session(self) -> UserSession | None:
        """The session the store is bound to, if any."""
        return self._session

    @property
    def date_label(self) -> str:
        """Human label for the selected day."""
        return describe_day(
            calendar_day(self.selected_date, self.tz),
            calendar_day(self.clock(self.tz), self.tz),
        )

    @property
    def pending_syncs(self) -> int:
        """Number of create calls still in flight."""
        return len(self._pending)

    def find(self, local_id: UUID) -> FoodRecord | None:
        """Return the record with the given local id, if present."""
        index = self._index_of(local_id)
        return None if index is None else self._records[index]

    def on_session_start(self, session: UserSession) -> None:
        """Bind the store to a new session with an empty collection."""
        self._epoch += 1
        self._session = session
        self._clear()
        _logger.info("Record store bound to user %s", session.user_id)

    def on_session_end(self) -> None:
        """Drop the session and everything loaded for it."""
        self._epoch += 1
        self._session = None
        self._clear()
        _logger.info("Record store cleared after session end")

    async def load(self, day: datetime | None = None) -> list[FoodRecord]:
        """Replace the collection with the backend's records for a day."""
        if day is not None:
            self._selected_date = day
        session = self._session
        if session is None:
            self._clear()
            raise NoUser("Cannot load food records without a signed-in user")

        epoch = self._epoch
        self._load_seq += 1
        load_seq = self._load_seq
        target_day = calendar_day(self.selected_date, self.tz)
        try:
            fetched = await self.client.fetch(session.user_id, target_day)
        except (RemoteStoreError, BadRequest):
            if self._is_current_load(epoch, load_seq):
                self._clear()
            _logger.warning(
                "Loading records for user %s on %s failed, showing none",
                session.user_id,
                target_day,
            )
            raise

        if not self._is_current_load(epoch, load_seq):
            _logger.info("Discarding stale load for %s", target_day)
            return self.records
        self._records = list(fetched)
        self._recompute_meal_counts()
        _logger.info("Loaded %s records for %s", len(self._records), target_day)
        return self.records

    def add(self, record: FoodRecord) -> "asyncio.Task[FoodRecord | None]":
        """Append a record now and create it remotely in the background.

        The returned task resolves to the reconciled record, to ``None`` when
        the response no longer applies, or raises the remote error.
        """
        session = self._session
        if session is None:
            raise NoUser("Cannot add food records without a signed-in user")
        if self._index_of(record.local_id) is not None:
            raise BadRequest(f"Record {record.local_id} is already in the store")

        loop = asyncio.get_running_loop()
        self._records.append(record)
        self._recompute_meal_counts()
        task = loop.create_task(self._create_remote(session, self._epoch, record))
        self._pending.add(task)
        task.add_done_callback(lambda done: self._on_create_done(done, record))
        return task

    async def update(self, record: FoodRecord) -> FoodRecord:
        """Update a synced record remotely, then replace it locally."""
        if record.server_id is None:
            raise NoServerId(f"Record {record.local_id} was never synced")
        if self._session is None:
            raise NoUser("Cannot update food records without a signed-in user")
        self._check_server_id(record)

        epoch = self._epoch
        await self.client.update(record)
        if epoch != self._epoch:
            _logger.info("Discarding update for %s after session change", record.local_id)
            return record
        index = self._index_of(record.local_id)
        if index is None:
            _logger.info("Updated record %s is no longer in view", record.local_id)
            return record
        self._records[index] = record
        self._recompute_meal_counts()
        return record

    async def delete(self, record: FoodRecord) -> bool:
        """Delete a synced record remotely, then drop it locally."""
        if record.server_id is None:
            raise NoServerId(f"Record {record.local_id} was never synced")
        if self._session is None:
            raise NoUser("Cannot delete food records without a signed-in user")
        self._check_server_id(record)

        epoch = self._epoch
        await self.client.delete(record.server_id)
        if epoch != self._epoch:
            _logger.info("Discarding delete for %s after session change", record.local_id)
            return False
        index = self._index_of(record.local_id)
        if index is None:
            return False
        del self._records[index]
        self._recompute_meal_counts()
        return True

    async def select_date(self, day: datetime) -> list[FoodRecord]:
        """Switch to another day and reload."""
        return await self.load(day)

    async def previous_day(self) -> list[FoodRecord]:
        """Step back one calendar day and reload."""
        return await self.load(self.selected_date - timedelta(days=1))

    async def next_day(self) -> list[FoodRecord]:
        """Step forward one calendar day and reload."""
        return await self.load(self.selected_date + timedelta(days=1))

    async def wait_for_pending(self) -> None:
        """Wait until in-flight create calls have finished."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _create_remote(
        self, session: UserSession, epoch: int, record: FoodRecord
    ) -> FoodRecord | None:
        created = await self.client.create(session.user_id, record)
        return self._reconcile(epoch, record.local_id, created)

    def _reconcile(
        self, epoch: int, local_id: UUID, created: CreatedRecord
    ) -> FoodRecord | None:
        if epoch != self._epoch:
            _logger.info("Discarding create response for %s after session change", local_id)
            return None
        index = self._index_of(local_id)
        if index is None:
            _logger.debug("Created record %s is gone, ignoring response", local_id)
            return None
        if created.food_id != 0:
            for other in self._records:
                if other.server_id == created.food_id and other.local_id != local_id:
                    _logger.error(
                        "Server id %s already belongs to %s, not assigning to %s",
                        created.food_id,
                        other.local_id,
                        local_id,
                    )
                    return None
        synced = replace(self._records[index], server_id=created.food_id)
        self._records[index] = synced
        return synced

    def _on_create_done(self, task: asyncio.Task, record: FoodRecord) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning(
                "Creating %r (%s) failed, it stays unsynced: %s",
                record.name,
                record.local_id,
                exc,
            )

    def _check_server_id(self, record: FoodRecord) -> None:
        stored = self.find(record.local_id)
        if stored is None:
            return
        if stored.server_id is None:
            raise NoServerId(f"Record {record.local_id} was never synced")
        if stored.server_id != record.server_id:
            raise BadRequest(
                f"Record {record.local_id} is synced as {stored.server_id},"
                f" not {record.server_id}"
            )

    def _is_current_load(self, epoch: int, load_seq: int) -> bool:
        return epoch == self._epoch and load_seq == self._load_seq

    def _index_of(self, local_id: UUID) -> int | None:
        for index, record in enumerate(self._records):
            if record.local_id == local_id:
                return index
        return None

    def _clear(self) -> None:
        self._records = []
        self._meal_counts = empty_meal_counts()

    def _recompute_meal_counts(self) -> None:
        day = calendar_day(self.selected_date, self.tz)
        counts = empty_meal_counts()
        for record in self._records:
            if record.meal_type is None:
                continue
            if calendar_day(record.date, self.tz) != day:
                continue
            counts[record.meal_type] += 1
        self._meal_counts = counts
