"""
Apps Script Remote Authority

The trip sheet is served by a Google Apps Script web app deployed at a
single URL:

- GET  <url>  returns the whole trip as JSON with a "status" field
- POST <url>  accepts one command as a JSON body

The web app cannot answer CORS preflights, so commands are posted as
text/plain and the response is not read. That means a POST only tells
us whether the request went out, which is the signal the sync
coordinator needs.

Snapshot fetches are retried on transport errors with tenacity;
pushes are single-shot, the coordinator's pause/resume is their retry.
"""

import json
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tripledger.config import RemoteSettings, get_settings
from tripledger.models.commands import Command, command_to_payload
from tripledger.models.snapshot import REMOTE_SUCCESS_STATUS, LedgerSnapshot
from tripledger.services.remote.interface import (
    RemoteAuthorityInterface,
    RemoteUnavailableError,
    SnapshotRejectedError,
)


class AppsScriptClient(RemoteAuthorityInterface):
    """
    HTTP client for the Apps Script web app.

    The underlying httpx.AsyncClient is created lazily and can be
    injected (tests pass one built on httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Optional[RemoteSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().remote
        self._client = client
        self._owns_client = client is None
        self._logger = structlog.get_logger(__name__)
        self._skipped_rows: list[str] = []

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    async def _get_document(self) -> Any:
        client = self._get_client()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.fetch_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_min_wait_seconds,
                max=self._settings.retry_max_wait_seconds,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await client.get(self._settings.script_url)
        response.raise_for_status()
        return response.json()

    async def fetch_snapshot(self) -> LedgerSnapshot:
        try:
            document = await self._get_document()
        except httpx.HTTPStatusError as e:
            raise RemoteUnavailableError(
                f"Snapshot fetch failed with HTTP {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"Snapshot fetch failed: {e}")
        except ValueError as e:
            # response.json() on a non-JSON body (e.g. a login page)
            raise SnapshotRejectedError(None, f"Snapshot is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise SnapshotRejectedError(None, "Snapshot document is not a JSON object")

        status = document.get("status")
        if status != REMOTE_SUCCESS_STATUS:
            raise SnapshotRejectedError(status, f"Remote reported status {status!r}")

        skipped: list[str] = []
        snapshot = LedgerSnapshot.from_remote(document, skipped=skipped)
        self._skipped_rows = skipped
        self._logger.info(
            "snapshot_fetched",
            transactions=len(snapshot.transactions),
            itinerary=len(snapshot.itinerary),
            skipped_rows=len(skipped),
        )
        return snapshot

    @property
    def last_skipped_rows(self) -> list[str]:
        return list(self._skipped_rows)

    async def push_mutation(self, command: Command) -> bool:
        body = json.dumps(command_to_payload(command))
        try:
            await self._get_client().post(
                self._settings.script_url,
                content=body,
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
        except httpx.HTTPError as e:
            self._logger.warning(
                "mutation_push_failed",
                action=command.action,
                error=str(e),
            )
            return False
        return True

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
