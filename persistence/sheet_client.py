"""
Best-effort delivery of consultation outcomes to a spreadsheet web-app endpoint.

The endpoint accepts a URL-encoded form POST. By default nothing about the
response is inspected: a send counts as delivered once the request went out
without a network-level failure. `DeliveryMode.ACKNOWLEDGED` additionally
requires a 2xx status.

A timed-out attempt is abandoned, not aborted: the worker thread keeps the
request in flight until the `requests` timeout fires, so the server may still
receive it. The retry that follows then submits the same row again. Receivers
should tolerate duplicate rows with identical `timestamp` and contact fields.
"""

from __future__ import annotations

import asyncio
import logging
import os
import socket
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

import requests

from consultation_state import AnalysisResult, DisputeForm

from .errors import (
    SyncConnectionLost,
    SyncError,
    SyncFailed,
    SyncNetworkFailure,
    SyncOffline,
    SyncTimeout,
)

logger = logging.getLogger(__name__)

MISSING_PLACEHOLDER = "not provided"


class DeliveryMode(str, Enum):
    DISPATCHED = "dispatched"
    ACKNOWLEDGED = "acknowledged"


@dataclass(slots=True)
class SheetSyncConfig:
    """Connection and retry settings for the remote collection endpoint."""

    endpoint_url: Optional[str] = None
    timeout_seconds: float = 15.0
    max_retries: int = 2
    backoff_base_seconds: float = 1.0
    delivery_mode: DeliveryMode = DeliveryMode.DISPATCHED
    timezone: str = "Asia/Seoul"

    @classmethod
    def from_env(cls) -> "SheetSyncConfig":
        return cls(
            endpoint_url=os.getenv("SHEET_SYNC_URL") or None,
            timeout_seconds=float(os.getenv("SHEET_SYNC_TIMEOUT", "15")),
            max_retries=int(os.getenv("SHEET_SYNC_MAX_RETRIES", "2")),
            delivery_mode=DeliveryMode(os.getenv("SHEET_SYNC_DELIVERY_MODE", DeliveryMode.DISPATCHED.value)),
            timezone=os.getenv("SHEET_SYNC_TIMEZONE", "Asia/Seoul"),
        )


def resolves_host(url: str) -> bool:
    """Cheap connectivity check: can the endpoint host be resolved?"""
    host = urlparse(url).hostname
    if not host:
        return False
    try:
        socket.getaddrinfo(host, None)
    except OSError:
        return False
    return True


def build_payload(
    form_data: DisputeForm,
    result: AnalysisResult,
    *,
    now: datetime,
) -> Dict[str, str]:
    """Flatten a form/result pair into the field set the sheet expects."""
    return {
        "timestamp": now.strftime("%Y-%m-%d %H:%M:%S"),
        "role": form_data.role,
        "issueType": form_data.issue_type,
        "phone": form_data.phone or MISSING_PLACEHOLDER,
        "email": form_data.email or MISSING_PLACEHOLDER,
        "symptoms": form_data.symptoms,
        "history": form_data.history,
        "otherPartyInfo": form_data.other_party_info,
        "coreIssue": result.coreIssue,
        "recommendedScript": result.recommendedScript,
        "isSuccess": "analysis succeeded" if result.isConsultationPossible else "analysis failed",
    }


class SheetSyncClient:
    """
    Sends one flattened record per call, retrying transient failures.

    Connectivity, sleeping and the HTTP session are injectable so the retry
    policy can be exercised without a network.
    """

    def __init__(
        self,
        *,
        config: SheetSyncConfig,
        session: Optional[requests.Session] = None,
        is_online: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": "DisputeConsult/0.1",
            }
        )
        self._is_online = is_online or self._default_is_online
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(ZoneInfo(self._config.timezone)))

    @property
    def config(self) -> SheetSyncConfig:
        return self._config

    async def send(self, form_data: DisputeForm, result: AnalysisResult) -> None:
        url = self._config.endpoint_url
        if not url:
            logger.warning("Sheet sync URL is not configured; skipping remote save.")
            return

        if not await self._online():
            raise SyncOffline()

        payload = build_payload(form_data, result, now=self._clock())
        total_attempts = max(0, self._config.max_retries) + 1
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(total_attempts):
            if attempt > 0:
                delay = self._config.backoff_base_seconds * (2 ** (attempt - 1))
                logger.info("Sheet sync retry %d of %d, waiting %.1fs", attempt + 1, total_attempts, delay)
                await self._sleep(delay)

            attempts += 1
            try:
                await asyncio.wait_for(
                    asyncio.to_thread(self._post, url, payload),
                    timeout=self._config.timeout_seconds,
                )
                logger.info("Sheet sync request dispatched on attempt %d", attempt + 1)
                return
            except Exception as exc:
                last_error = exc
                logger.warning("Sheet sync attempt %d failed: %s", attempt + 1, self._describe(exc))

            if not await self._online():
                raise SyncConnectionLost(attempts=attempts)

        logger.error("All %d sheet sync attempts failed.", total_attempts)
        raise self._classify(last_error, attempts)

    def _post(self, url: str, payload: Dict[str, str]) -> None:
        response = self._session.post(url, data=payload, timeout=self._config.timeout_seconds)
        logger.debug("Sheet sync response status: %s", response.status_code)
        if self._config.delivery_mode is DeliveryMode.ACKNOWLEDGED:
            response.raise_for_status()

    @staticmethod
    def _classify(error: Optional[BaseException], attempts: int) -> SyncError:
        if isinstance(error, (asyncio.TimeoutError, requests.exceptions.Timeout)):
            return SyncTimeout(attempts=attempts)
        if isinstance(error, requests.exceptions.ConnectionError):
            return SyncNetworkFailure(attempts=attempts)
        return SyncFailed(attempts=attempts)

    @staticmethod
    def _describe(exc: BaseException) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return "Request timed out"
        return str(exc) or type(exc).__name__

    async def _online(self) -> bool:
        return await asyncio.to_thread(self._is_online)

    def _default_is_online(self) -> bool:
        url = self._config.endpoint_url
        return bool(url) and resolves_host(url)
