"""Error taxonomy for food record synchronization."""


class RecordSyncError(Exception):
    """Base class for record synchronization failures."""


class NoUser(RecordSyncError):
    """Raised when an operation needs an active session and none is bound."""


class MissingIdentifier(RecordSyncError):
    """Raised when a mutation needs a server identity that is absent."""


class NoServerId(MissingIdentifier):
    """Raised by the record store for records that were never synced."""


class BadRequest(RecordSyncError, ValueError):
    """Raised for invalid caller-supplied parameters."""


class RemoteStoreError(RecordSyncError):
    """Base class for failures talking to the remote store."""


class NetworkUnavailable(RemoteStoreError):
    """Raised on transport-level failures such as timeouts or refused connections."""


class BadResponse(RemoteStoreError):
    """Raised when the backend answers with an error status or a malformed body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
