"""Exception types raised by the local record store and the remote sync client."""

from __future__ import annotations


class RecordStoreError(RuntimeError):
    """Base class for local record store failures; carries a user-facing message."""

    default_message = "Saving the consultation history on this device failed."

    def __init__(self, message: str | None = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class StorageUnavailable(RecordStoreError):
    """The storage probe failed, e.g. storage disabled by privacy settings."""

    default_message = "Local storage is disabled on this device, so the consultation could not be saved."


class StorageFull(RecordStoreError):
    """Quota was exceeded and pruning old records did not free enough space."""

    default_message = "Not enough storage space to save the consultation history."


class StorageWriteFailed(RecordStoreError):
    """The backend rejected a write for a reason other than a recoverable quota."""


class CorruptedState(RecordStoreError):
    """Persisted collection could not be decoded. Always recovered by the store."""

    default_message = "Stored consultation history is unreadable."


class StorageBackendError(OSError):
    """Non-quota fault reported by a storage backend."""


class SyncError(RuntimeError):
    """Base class for remote sync failures; carries a user-facing message."""

    default_message = "Saving to the server failed."

    def __init__(self, message: str | None = None, *, attempts: int = 0) -> None:
        self.user_message = message or self.default_message
        self.attempts = attempts
        super().__init__(self.user_message)


class SyncOffline(SyncError):
    default_message = "The internet connection is unavailable, so the consultation was not sent to the server."


class SyncConnectionLost(SyncError):
    default_message = "The network connection was lost while sending."


class SyncTimeout(SyncError):
    default_message = "The server response timed out."


class SyncNetworkFailure(SyncError):
    default_message = "Please check your network connection."


class SyncFailed(SyncError):
    """Catch-all once the retry budget is spent."""
