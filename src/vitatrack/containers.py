"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from vitatrack.adapters.meal_record_client import HttpxMealRecordClient
from vitatrack.adapters.progress_client import HttpxProgressClient
from vitatrack.config import Settings, parse_timezone
from vitatrack.services.progress import ProgressService
from vitatrack.services.records import RecordStore
from vitatrack.services.sessions import SessionGate


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    record_store: RecordStore
    session_gate: SessionGate
    progress_service: ProgressService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    tz = parse_timezone(resolved_settings.timezone)
    record_client = HttpxMealRecordClient.build(
        base_url=resolved_settings.api_base_url,
        server_origin=resolved_settings.server_origin,
        timeout=resolved_settings.request_timeout_seconds,
        tz=tz,
    )
    progress_client = HttpxProgressClient.create(
        base_url=resolved_settings.api_base_url,
        timeout=resolved_settings.request_timeout_seconds,
    )
    record_store = RecordStore(client=record_client, tz=tz)
    session_gate = SessionGate(record_store=record_store)
    progress_service = ProgressService(client=progress_client)

    async def close_resources() -> None:
        await record_store.wait_for_pending()
        await record_client.close()
        await progress_client.close()

    return AppContainer(
        settings=resolved_settings,
        record_store=record_store,
        session_gate=session_gate,
        progress_service=progress_service,
        close_resources=close_resources,
    )
