"""KIE AI Sora 2 video generation through the generic jobs API."""

import asyncio
import json
import logging
from typing import Callable, Optional

import httpx

from models.script import GeneratedAsset
from services.credentials import CredentialProvider
from services.errors import MalformedResponse, NoJobIdentifierFound
from services.extraction import JOB_ID_RULES, first_list_item, first_match
from services.job_poller import (
    VIDEO_POLL_POLICY,
    PollPolicy,
    PollResult,
    ProgressFn,
    SubmitResult,
)
from services.prompts import build_video_prompt
from services.providers.base import GenerationRequest, PollingProvider, VideoProvider
from services.providers.kie_veo import KIE_API_BASE

logger = logging.getLogger(__name__)

SORA_MODEL = "sora-2-text-to-video"

# jobs API aspect ratio names
SORA_ASPECT_RATIOS = {
    "9:16": "portrait",
    "16:9": "landscape",
}

_RESULT_URL = first_list_item("resultUrls")


class KieSoraAdapter(PollingProvider, VideoProvider):
    """Generates scene clips with Sora 2 through KIE AI."""

    name = "KIE AI Sora"
    credential = "kie"

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy = VIDEO_POLL_POLICY,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
        model: str = SORA_MODEL,
    ):
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event)
        self.model = model

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key()}",
            "Content-Type": "application/json",
        }

    async def generate(
        self,
        request: GenerationRequest,
        on_job_id: Optional[Callable[[str], None]] = None,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        headers = self._headers()
        payload = {
            "model": self.model,
            "input": {
                "prompt": build_video_prompt(
                    request.prompt,
                    scene_text=request.scene_text,
                    topic=request.topic,
                    style=request.style,
                ),
                "aspect_ratio": SORA_ASPECT_RATIOS.get(request.aspect_ratio, "portrait"),
            },
        }

        async def submit() -> SubmitResult:
            logger.info(f"Submitting KIE Sora job ({self.model})")
            response = await self._post(
                f"{KIE_API_BASE}/jobs/createTask", headers=headers, json=payload
            )
            self._raise_for_submit(response)
            data = self._json(response)
            task_id = first_match(data, JOB_ID_RULES)
            if not task_id:
                logger.error(f"No taskId in KIE Sora response: {str(data)[:500]}")
                raise NoJobIdentifierFound(
                    "KIE AI Sora response did not contain a task ID",
                    provider=self.name,
                )
            return SubmitResult(job_id=task_id)

        outcome = await self._poller(progress).run(submit, self._poll_once, on_job_id=on_job_id)
        return GeneratedAsset(url=self._validated(outcome.result), job_id=outcome.job_id)

    async def resume(
        self,
        job_id: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        self._api_key()
        logger.info(f"Resuming KIE Sora task {job_id}")
        url = await self._poller(progress).resume(job_id, self._poll_once)
        return GeneratedAsset(url=self._validated(url), job_id=job_id)

    async def _poll_once(self, task_id: str) -> PollResult:
        response = await self.client.get(
            f"{KIE_API_BASE}/jobs/recordInfo",
            params={"taskId": task_id},
            headers=self._headers(),
        )
        self._check_auth(response)
        response.raise_for_status()
        data = self._json(response)

        record = data.get("data") if isinstance(data, dict) else None
        if not isinstance(record, dict):
            return PollResult.pending("Waiting for video...")

        state = record.get("state")
        if state == "success":
            # resultJson is a JSON document encoded as a string
            result = json.loads(record.get("resultJson") or "{}")
            video_url = _RESULT_URL(result)
            if not video_url:
                raise MalformedResponse(
                    "Sora task succeeded but resultJson has no resultUrls",
                    provider=self.name,
                )
            return PollResult.done(video_url)
        if state == "fail":
            return PollResult.failed(record.get("failMsg") or "Unknown error")

        return PollResult.pending(f"Status: {state or 'waiting'}...")
