"""Tests for the session gate."""

import asyncio
from dataclasses import dataclass, field, replace

import pytest

from vitatrack.domain.errors import BadRequest, NetworkUnavailable
from vitatrack.domain.records import CreatedRecord, MealType
from vitatrack.domain.sessions import UserSession
from vitatrack.services.records import RecordStore
from vitatrack.services.sessions import SessionGate
from tests.conftest import FakeMealRecordClient, make_record


@dataclass
class RecordingListener:
    events: list[str] = field(default_factory=list)

    def on_session_start(self, session: UserSession) -> None:
        self.events.append(f"start:{session.user_id}")

    def on_session_end(self) -> None:
        self.events.append("end")


def test_login_binds_store_and_loads_records(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
) -> None:
    record_client.stored = [make_record("Oats", server_id=1)]

    loaded = asyncio.run(session_gate.login(UserSession(user_id=3, username="amy")))

    assert session_gate.current_user == UserSession(user_id=3, username="amy")
    assert record_store.session == session_gate.current_user
    assert [record.name for record in loaded] == ["Oats"]
    assert record_client.fetch_calls[0][0] == 3


def test_login_rejects_invalid_user_id(
    session_gate: SessionGate, record_client: FakeMealRecordClient
) -> None:
    with pytest.raises(BadRequest):
        asyncio.run(session_gate.login(UserSession(user_id=0)))

    assert session_gate.current_user is None
    assert record_client.fetch_calls == []


def test_login_surfaces_load_failure_with_empty_state(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
) -> None:
    record_client.fail_fetch = NetworkUnavailable("offline")

    with pytest.raises(NetworkUnavailable):
        asyncio.run(session_gate.login(UserSession(user_id=3)))

    assert session_gate.current_user is not None
    assert record_store.records == []


def test_logout_clears_synchronously_and_notifies_in_order(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
) -> None:
    listener = RecordingListener()
    session_gate.subscribe(listener)
    record_client.stored = [make_record("Oats", server_id=1)]
    asyncio.run(session_gate.login(UserSession(user_id=3)))

    session_gate.logout()

    assert session_gate.current_user is None
    assert record_store.records == []
    assert listener.events == ["start:3", "end"]


def test_switching_users_ends_previous_session_first(
    session_gate: SessionGate,
) -> None:
    listener = RecordingListener()
    session_gate.subscribe(listener)

    asyncio.run(session_gate.login(UserSession(user_id=3)))
    asyncio.run(session_gate.login(UserSession(user_id=4)))

    assert listener.events == ["start:3", "end", "start:4"]
    assert session_gate.current_user == UserSession(user_id=4)


def test_in_flight_add_is_discarded_after_logout(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
) -> None:
    record_client.hold_creates = True

    async def scenario() -> object:
        await session_gate.login(UserSession(user_id=3))
        task = record_store.add(make_record())
        await record_client.wait_for_held_creates(1)
        session_gate.logout()
        assert record_store.records == []
        record_client.held_creates[0].set_result(CreatedRecord(food_id=5, record_id=5))
        return await task

    result = asyncio.run(scenario())

    assert result is None
    assert record_store.records == []


@pytest.mark.parametrize("operation", ["update", "delete"])
def test_in_flight_mutation_is_discarded_after_user_switch(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
    operation: str,
) -> None:
    oats = make_record("Oats", server_id=1)
    record_client.stored = [oats]
    record_client.fresh_local_ids = False
    record_client.hold_updates = True
    record_client.hold_deletes = True

    async def scenario() -> None:
        await session_gate.login(UserSession(user_id=3))
        if operation == "update":
            held = record_client.held_updates
            pending = asyncio.ensure_future(
                record_store.update(replace(oats, name="Porridge", calories=150))
            )
        else:
            held = record_client.held_deletes
            pending = asyncio.ensure_future(record_store.delete(oats))
        await record_client.wait_for_held(held, 1)
        await session_gate.login(UserSession(user_id=4))
        assert record_store.records == [oats]
        held[0].set_result(None)
        await pending

    asyncio.run(scenario())

    assert record_store.session == UserSession(user_id=4)
    assert record_store.records == [oats]
    assert record_store.meal_counts[MealType.BREAKFAST] == 1


@pytest.mark.parametrize("operation", ["update", "delete"])
def test_in_flight_mutation_after_logout_leaves_state_empty(
    session_gate: SessionGate,
    record_store: RecordStore,
    record_client: FakeMealRecordClient,
    operation: str,
) -> None:
    record_client.stored = [make_record("Oats", server_id=1)]
    record_client.hold_updates = True
    record_client.hold_deletes = True

    async def scenario() -> object:
        await session_gate.login(UserSession(user_id=3))
        oats = record_store.records[0]
        if operation == "update":
            held = record_client.held_updates
            pending = asyncio.ensure_future(record_store.update(replace(oats, name="Porridge")))
        else:
            held = record_client.held_deletes
            pending = asyncio.ensure_future(record_store.delete(oats))
        await record_client.wait_for_held(held, 1)
        session_gate.logout()
        held[0].set_result(None)
        return await pending

    result = asyncio.run(scenario())

    assert record_store.records == []
    assert record_store.meal_counts == {meal_type: 0 for meal_type in MealType}
    if operation == "delete":
        assert result is False
