"""Domain models for user sessions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserSession:
    """Represents the signed-in user whose records are in view."""

    user_id: int
    username: str | None = None
