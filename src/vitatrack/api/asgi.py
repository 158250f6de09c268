"""ASGI entrypoint for the VitaTrack control API."""

from vitatrack.api.app import create_app
from vitatrack.containers import build_container

app = create_app(build_container())
