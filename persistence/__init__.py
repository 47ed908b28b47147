"""
Persistence sinks for finished consultations.

Wire a local store and a sheet client into an `OutcomeRecorder` once per
process and hand it every successful analysis:

```python
from persistence import build_outcome_recorder

recorder = build_outcome_recorder()
warning = await recorder.record_outcome(form, result)
```
"""

from .errors import (  # noqa: F401
    RecordStoreError,
    StorageFull,
    StorageUnavailable,
    StorageWriteFailed,
    SyncConnectionLost,
    SyncError,
    SyncFailed,
    SyncNetworkFailure,
    SyncOffline,
    SyncTimeout,
)
from .outcome_recorder import OutcomeRecorder
from .record_store import LocalRecordStore
from .sheet_client import DeliveryMode, SheetSyncClient, SheetSyncConfig
from .storage_backend import FileStorageBackend, MemoryStorageBackend, WriteStatus


def build_outcome_recorder() -> OutcomeRecorder:
    """Create a recorder from environment settings."""
    store = LocalRecordStore(FileStorageBackend.from_env())
    sync_client = SheetSyncClient(config=SheetSyncConfig.from_env())
    return OutcomeRecorder(store=store, sync_client=sync_client)


__all__ = [
    "DeliveryMode",
    "FileStorageBackend",
    "LocalRecordStore",
    "MemoryStorageBackend",
    "OutcomeRecorder",
    "RecordStoreError",
    "SheetSyncClient",
    "SheetSyncConfig",
    "StorageFull",
    "StorageUnavailable",
    "StorageWriteFailed",
    "SyncConnectionLost",
    "SyncError",
    "SyncFailed",
    "SyncNetworkFailure",
    "SyncOffline",
    "SyncTimeout",
    "WriteStatus",
    "build_outcome_recorder",
]
