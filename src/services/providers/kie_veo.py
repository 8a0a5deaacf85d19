"""KIE AI Veo 3.1 video generation."""

import asyncio
import logging
from typing import Callable, Iterable, Optional

import httpx

from models.script import GeneratedAsset
from services.credentials import CredentialProvider
from services.errors import MalformedResponse, NoJobIdentifierFound
from services.extraction import (
    JOB_ID_RULES,
    KIE_RESULT_URL_RULES,
    VIDEO_URL_RULES,
    first_match,
)
from services.job_poller import (
    VIDEO_POLL_POLICY,
    PollPolicy,
    PollResult,
    ProgressFn,
    SubmitResult,
)
from services.prompts import build_video_prompt
from services.providers.base import (
    IMMEDIATE_JOB_ID,
    GenerationRequest,
    PollingProvider,
    VideoProvider,
)

logger = logging.getLogger(__name__)

KIE_API_BASE = "https://api.kie.ai/api/v1"

# record-info errorCode values still treated as "in progress"
KIE_PENDING_ERROR_CODES: frozenset[int] = frozenset()

# successFlag values: 0 generating, 1 success, 2 and 3 failed
KIE_SUCCESS_FLAG = 1
KIE_FAILED_FLAGS = (2, 3)


def _error_code(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return -1


class KieVeoAdapter(PollingProvider, VideoProvider):
    """Generates scene clips with Veo 3.1 fast through KIE AI."""

    name = "KIE AI"
    credential = "kie"

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy = VIDEO_POLL_POLICY,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
        model: str = "veo3_fast",
        pending_error_codes: Iterable[int] = KIE_PENDING_ERROR_CODES,
        enable_translation: bool = True,
    ):
        """Initialize KIE Veo adapter.

        Args:
            credentials: Source of the KIE API key
            policy: Polling interval and attempt budget
            client: HTTP client to use
            cancel_event: Stops local polling when set
            model: KIE Veo model name
            pending_error_codes: record-info errorCode values to keep polling on
            enable_translation: Let KIE translate non-English prompts
        """
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event)
        self.model = model
        self.pending_error_codes = frozenset(pending_error_codes)
        self.enable_translation = enable_translation

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
        prompt = build_video_prompt(
            request.prompt,
            scene_text=request.scene_text,
            topic=request.topic,
            style=request.style,
        )

        async def submit() -> SubmitResult:
            payload = {
                "prompt": prompt,
                "model": self.model,
                "aspectRatio": request.aspect_ratio,
                "enableFallback": False,
                "enableTranslation": self.enable_translation,
                "generationType": "TEXT_2_VIDEO",
            }
            logger.info(f"Submitting KIE Veo job ({self.model}, {request.aspect_ratio})")
            response = await self._post(
                f"{KIE_API_BASE}/veo/generate", headers=headers, json=payload
            )
            self._raise_for_submit(response)
            data = self._json(response)

            video_url = first_match(data, VIDEO_URL_RULES)
            task_id = first_match(data, JOB_ID_RULES)
            if video_url:
                return SubmitResult(immediate_result=video_url, job_id=task_id or IMMEDIATE_JOB_ID)
            if not task_id:
                logger.error(f"No taskId in KIE response: {str(data)[:500]}")
                raise NoJobIdentifierFound(
                    "KIE AI response did not contain a task ID or video URL",
                    provider=self.name,
                )
            logger.info(f"KIE Veo task submitted: {task_id}")
            return SubmitResult(job_id=task_id)

        if progress:
            progress("Initiating scene generation with KIE AI...", 0.0)
        outcome = await self._poller(progress).run(submit, self._poll_once, on_job_id=on_job_id)
        return GeneratedAsset(url=self._validated(outcome.result), job_id=outcome.job_id)

    async def resume(
        self,
        job_id: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        self._api_key()
        logger.info(f"Resuming KIE Veo task {job_id}")
        url = await self._poller(progress).resume(job_id, self._poll_once)
        return GeneratedAsset(url=self._validated(url), job_id=job_id)

    async def _poll_once(self, task_id: str) -> PollResult:
        response = await self.client.get(
            f"{KIE_API_BASE}/veo/record-info",
            params={"taskId": task_id},
            headers=self._headers(),
        )
        self._check_auth(response)
        response.raise_for_status()
        data = self._json(response)
        if not isinstance(data, dict):
            raise MalformedResponse("KIE record-info returned a non-object body", provider=self.name)

        record = data.get("data") or {}
        message = data.get("msg") or data.get("errorMessage") or "Unknown error"

        error_code = _error_code(record.get("errorCode"))
        if error_code and error_code not in self.pending_error_codes:
            return PollResult.failed(record.get("errorMessage") or message)

        if data.get("code") != 200:
            return PollResult.pending(f"Status: {message}...")

        success_flag = record.get("successFlag")
        if success_flag == KIE_SUCCESS_FLAG:
            video_url = first_match(data, KIE_RESULT_URL_RULES)
            if not video_url:
                raise MalformedResponse(
                    "Video is ready but no URL found in response", provider=self.name
                )
            return PollResult.done(video_url)
        if success_flag in KIE_FAILED_FLAGS:
            return PollResult.failed(record.get("errorMessage") or message)

        return PollResult.pending("Processing..." if record.get("response") else "Waiting for video...")
