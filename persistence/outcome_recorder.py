"""Fan a successful analysis out to the local store and the remote sheet."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional, Set, Union

from consultation_state import AnalysisResult, DisputeForm

from .errors import RecordStoreError, SyncError
from .record_store import LocalRecordStore
from .sheet_client import SheetSyncClient

logger = logging.getLogger(__name__)

DEVICE_LABEL = "[Device save failed]"
SERVER_LABEL = "[Server submission failed]"
RESULT_STILL_VALID = "(The analysis result itself is valid.)"


class OutcomeRecorder:
    """Runs both sinks side by side and folds their failures into one warning."""

    def __init__(self, *, store: LocalRecordStore, sync_client: SheetSyncClient) -> None:
        self._store = store
        self._sync_client = sync_client
        self._pending: Set[asyncio.Task] = set()

    @property
    def store(self) -> LocalRecordStore:
        return self._store

    async def record_outcome(self, form_data: DisputeForm, result: AnalysisResult) -> Optional[str]:
        """Return an aggregated warning if either sink failed, otherwise None."""
        local_outcome, remote_outcome = await asyncio.gather(
            self._store.save(form_data, result),
            self._sync_client.send(form_data, result),
            return_exceptions=True,
        )

        messages: List[str] = []
        if isinstance(local_outcome, BaseException):
            self._reraise_if_fatal(local_outcome)
            reason = self._reason(local_outcome, RecordStoreError, "Saving the history failed.")
            logger.warning("History save warning: %s", reason)
            messages.append(f"{DEVICE_LABEL} {reason}")
        else:
            logger.debug("Local record stored as %s", local_outcome)

        if isinstance(remote_outcome, BaseException):
            self._reraise_if_fatal(remote_outcome)
            reason = self._reason(remote_outcome, SyncError, "A problem occurred while submitting to the server.")
            logger.error("Sheet save failed: %s", remote_outcome)
            messages.append(f"{SERVER_LABEL} {reason}")

        if not messages:
            return None
        return "\n".join(messages) + f" {RESULT_STILL_VALID}"

    def dispatch(
        self,
        form_data: DisputeForm,
        result: AnalysisResult,
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> Union[asyncio.Task, threading.Thread]:
        """Start recording without waiting for it; `on_warning` receives any warning."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._record_and_notify(form_data, result, on_warning))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return task

        thread = threading.Thread(
            target=asyncio.run,
            args=(self._record_and_notify(form_data, result, on_warning),),
            name="outcome-recorder",
            daemon=True,
        )
        thread.start()
        return thread

    async def _record_and_notify(
        self,
        form_data: DisputeForm,
        result: AnalysisResult,
        on_warning: Optional[Callable[[str], None]],
    ) -> Optional[str]:
        warning = await self.record_outcome(form_data, result)
        if warning and on_warning is not None:
            on_warning(warning)
        return warning

    @staticmethod
    def _reason(exc: BaseException, expected: type, fallback: str) -> str:
        if isinstance(exc, expected):
            return exc.user_message
        return str(exc) or fallback

    @staticmethod
    def _reraise_if_fatal(exc: BaseException) -> None:
        if not isinstance(exc, Exception):
            raise exc
