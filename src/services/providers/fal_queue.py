"""fal.ai queue client shared by the FFmpeg merge endpoints."""

import asyncio
import logging
from typing import Optional

import httpx

from services.credentials import CredentialProvider
from services.errors import NoJobIdentifierFound
from services.extraction import (
    REQUEST_ID_RULES,
    STATUS_RULES,
    STITCH_URL_RULES,
    first_match,
)
from services.job_poller import PollOutcome, PollPolicy, PollResult, ProgressFn, SubmitResult
from services.providers.base import PollingProvider

logger = logging.getLogger(__name__)

FAL_QUEUE_BASE = "https://queue.fal.run"
FFMPEG_APP = "fal-ai/ffmpeg-api"

FAL_FAILED_STATUSES = ("FAILED", "ERROR")


class FalQueueProvider(PollingProvider):
    """Submits a request to a fal.ai queue endpoint and polls it to completion.

    Subclasses set ``endpoint`` (e.g. ``merge-videos``) and ``progress_label``.
    """

    credential = "fal"
    auth_error_statuses = (401, 403)
    endpoint: str = ""
    progress_label: str = "Processing"

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event, timeout=120.0)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Key {self._api_key()}",
            "Content-Type": "application/json",
        }

    async def _run(
        self,
        payload: dict,
        progress: Optional[ProgressFn] = None,
    ) -> PollOutcome:
        headers = self._headers()

        async def submit() -> SubmitResult:
            response = await self._post(
                f"{FAL_QUEUE_BASE}/{FFMPEG_APP}/{self.endpoint}", headers=headers, json=payload
            )
            self._raise_for_submit(response)
            data = self._json(response)

            request_id = first_match(data, REQUEST_ID_RULES)
            if not request_id:
                raise NoJobIdentifierFound(
                    f"No request_id returned from fal.ai. Response: {str(data)[:300]}",
                    provider=self.name,
                )
            logger.info(f"fal.ai {self.endpoint} request queued: {request_id}")
            return SubmitResult(job_id=request_id)

        return await self._poller(progress).run(submit, self._poll_once)

    async def _poll_once(self, request_id: str) -> PollResult:
        response = await self.client.get(
            f"{FAL_QUEUE_BASE}/{FFMPEG_APP}/requests/{request_id}",
            headers=self._headers(),
        )
        self._check_auth(response)
        response.raise_for_status()
        data = self._json(response)

        url = first_match(data, STITCH_URL_RULES)
        if url:
            return PollResult.done(url)

        status = (first_match(data, STATUS_RULES) or "IN_PROGRESS").upper()
        if status in FAL_FAILED_STATUSES:
            response_data = data.get("response") if isinstance(data.get("response"), dict) else {}
            reason = data.get("error") or data.get("message") or response_data.get("error")
            return PollResult.failed(str(reason or "Unknown error"))

        return PollResult.pending(f"{self.progress_label}...")
