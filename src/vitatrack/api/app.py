"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, time
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from vitatrack.api.models import (
    DateRequest,
    RecordRequest,
    RecordUpdateRequest,
    SessionRequest,
)
from vitatrack.app_logging import configure_logging
from vitatrack.containers import AppContainer
from vitatrack.domain.errors import (
    BadRequest,
    BadResponse,
    MissingIdentifier,
    NetworkUnavailable,
    NoUser,
    RecordSyncError,
)
from vitatrack.domain.records import FoodRecord, calendar_day
from vitatrack.domain.sessions import UserSession
from vitatrack.services.records import RecordStore

_ERROR_STATUS: tuple[tuple[type[RecordSyncError], int], ...] = (
    (NoUser, status.HTTP_401_UNAUTHORIZED),
    (MissingIdentifier, status.HTTP_409_CONFLICT),
    (BadRequest, status.HTTP_400_BAD_REQUEST),
    (NetworkUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (BadResponse, status.HTTP_502_BAD_GATEWAY),
)
_REQUIRED_FIELDS = ("name", "calories", "unit", "date")


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(RecordSyncError)
    async def record_sync_error(request: Request, exc: RecordSyncError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/session")
    async def start_session(payload: SessionRequest, request: Request) -> dict[str, object]:
        """Sign a user in and load the selected day."""
        state_container: AppContainer = request.app.state.container
        session = UserSession(user_id=payload.user_id, username=payload.username)
        load_error: str | None = None
        try:
            await state_container.session_gate.login(session)
        except (NetworkUnavailable, BadResponse) as exc:
            logger.exception("Initial load failed for user %s", session.user_id)
            load_error = type(exc).__name__
        view = _store_view(state_container.record_store)
        view["load_error"] = load_error
        return view

    @app.delete("/session")
    async def end_session(request: Request) -> dict[str, str]:
        """Sign the current user out."""
        state_container: AppContainer = request.app.state.container
        state_container.session_gate.logout()
        return {"status": "ok"}

    @app.get("/records")
    async def list_records(request: Request) -> dict[str, object]:
        """Return the records and meal counts currently in view."""
        state_container: AppContainer = request.app.state.container
        return _store_view(state_container.record_store)

    @app.post("/records", status_code=status.HTTP_201_CREATED)
    async def add_record(payload: RecordRequest, request: Request) -> dict[str, object]:
        """Add a record optimistically; the backend sync continues in the background."""
        store: RecordStore = request.app.state.container.record_store
        record = FoodRecord(
            name=payload.name.strip(),
            calories=payload.calories,
            unit=payload.unit.strip() or "g",
            amount=payload.amount,
            meal_type=payload.meal_type,
            date=_resolve_datetime(payload.date, store),
            image_url=payload.image_url or None,
        )
        store.add(record)
        return _serialize_record(record)

    @app.put("/records/date")
    async def select_date(payload: DateRequest, request: Request) -> dict[str, object]:
        """Show an arbitrary day."""
        store: RecordStore = request.app.state.container.record_store
        await store.select_date(datetime.combine(payload.day, time(), tzinfo=store.tz))
        return _store_view(store)

    @app.put("/records/{local_id}")
    async def update_record(
        local_id: UUID, payload: RecordUpdateRequest, request: Request
    ) -> dict[str, object]:
        """Update a synced record with the fields present in the payload."""
        store: RecordStore = request.app.state.container.record_store
        existing = _require_record(store, local_id)
        record = replace(existing, **_record_changes(payload, store))
        updated = await store.update(record)
        return _serialize_record(updated)

    @app.delete("/records/{local_id}")
    async def delete_record(local_id: UUID, request: Request) -> dict[str, object]:
        """Delete a synced record."""
        store: RecordStore = request.app.state.container.record_store
        existing = _require_record(store, local_id)
        removed = await store.delete(existing)
        return {"deleted": removed, "local_id": str(local_id)}

    @app.post("/records/previous-day")
    async def previous_day(request: Request) -> dict[str, object]:
        """Show the previous day."""
        store: RecordStore = request.app.state.container.record_store
        await store.previous_day()
        return _store_view(store)

    @app.post("/records/next-day")
    async def next_day(request: Request) -> dict[str, object]:
        """Show the next day."""
        store: RecordStore = request.app.state.container.record_store
        await store.next_day()
        return _store_view(store)

    @app.get("/progress")
    async def progress(request: Request, day: date | None = None) -> dict[str, object]:
        """Return the nutrition goal completion for a day."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_gate.current_user
        if session is None:
            raise NoUser("Progress needs a signed-in user")
        store = state_container.record_store
        target = day or calendar_day(store.selected_date, store.tz)
        result = await state_container.progress_service.get_progress(
            session.user_id, target
        )
        return {
            "day": result.day.isoformat(),
            "progress": result.ratio,
            "message": result.message,
            "intake": result.intake.as_dict(),
            "goals": result.goals.as_dict(),
        }

    return app


def _status_for(exc: RecordSyncError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _require_record(store: RecordStore, local_id: UUID) -> FoodRecord:
    record = store.find(local_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return record


def _resolve_datetime(value: datetime | None, store: RecordStore) -> datetime:
    """Default to the selected day and attach the store timezone to naive values."""
    if value is None:
        return store.selected_date
    if value.tzinfo is None:
        return value.replace(tzinfo=store.tz)
    return value


def _serialize_record(record: FoodRecord) -> dict[str, object]:
    return {
        "local_id": str(record.local_id),
        "server_id": record.server_id,
        "name": record.name,
        "calories": record.calories,
        "unit": record.unit,
        "amount": record.amount,
        "meal_type": record.meal_type.value if record.meal_type else None,
        "date": record.date.isoformat(),
        "image_url": record.image_url,
        "synced": record.is_synced,
    }


def _store_view(store: RecordStore) -> dict[str, object]:
    session = store.session
    return {
        "user_id": session.user_id if session else None,
        "selected_date": calendar_day(store.selected_date, store.tz).isoformat(),
        "date_label": store.date_label,
        "records": [_serialize_record(record) for record in store.records],
        "meal_counts": {
            meal_type.value: count for meal_type, count in store.meal_counts.items()
        },
    }


def _record_changes(payload: RecordUpdateRequest, store: RecordStore) -> dict[str, object]:
    changes = payload.model_dump(exclude_unset=True)
    for name in _REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            raise BadRequest(f"{name} cannot be cleared")
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    if "unit" in changes:
        changes["unit"] = changes["unit"].strip() or "g"
    if "date" in changes:
        changes["date"] = _resolve_datetime(changes["date"], store)
    if "image_url" in changes:
        changes["image_url"] = changes["image_url"] or None
    return changes
