"""Google Veo video generation through the Gemini API.

Unlike the KIE providers, Veo on the Gemini API hands back a content
endpoint that requires the API key to download. The clip is fetched,
re-hosted on durable storage, and only kept as a local file when no
storage is available.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Callable, Optional

import httpx

from models.script import GeneratedAsset
from services.credentials import CredentialProvider
from services.errors import MalformedResponse, NoJobIdentifierFound, ProviderError
from services.job_poller import (
    GOOGLE_VEO_POLL_POLICY,
    PollPolicy,
    PollResult,
    ProgressFn,
    SubmitResult,
)
from services.prompts import build_video_prompt
from services.providers.base import (
    AssetStorage,
    GenerationRequest,
    PollingProvider,
    VideoProvider,
    persist_blob,
)

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_VEO_MODEL = "veo-3.1-fast-generate-preview"


def _video_uri(operation: dict) -> Optional[str]:
    response = operation.get("response") or {}
    samples = (response.get("generateVideoResponse") or {}).get("generatedSamples") or []
    if not samples:
        return None
    return ((samples[0] or {}).get("video") or {}).get("uri")


class GoogleVeoAdapter(PollingProvider, VideoProvider):
    """Generates scene clips with Veo through the Gemini API long-running operations."""

    name = "Google Veo"
    credential = "gemini"
    auth_error_statuses = (401, 403)
    allow_local_urls = True

    def __init__(
        self,
        credentials: CredentialProvider,
        storage: Optional[AssetStorage] = None,
        policy: PollPolicy = GOOGLE_VEO_POLL_POLICY,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
        model: str = DEFAULT_VEO_MODEL,
        local_dir: str = ".assets",
    ):
        """Initialize Google Veo adapter.

        Args:
            credentials: Source of the Gemini API key
            storage: Durable storage for downloaded clips
            policy: Polling interval and attempt budget
            client: HTTP client to use
            cancel_event: Stops local polling when set
            model: Veo model name
            local_dir: Directory for clips that could not be uploaded
        """
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event, timeout=300.0)
        self.storage = storage
        self.model = model
        self.local_dir = Path(local_dir)

    def _headers(self) -> dict:
        return {
            "x-goog-api-key": self._api_key(),
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
            "instances": [
                {
                    "prompt": build_video_prompt(
                        request.prompt,
                        scene_text=request.scene_text,
                        topic=request.topic,
                        style=request.style,
                    )
                }
            ],
            "parameters": {"aspectRatio": request.aspect_ratio},
        }

        async def submit() -> SubmitResult:
            logger.info(f"Submitting Google Veo operation ({self.model})")
            response = await self._post(
                f"{GEMINI_API_BASE}/models/{self.model}:predictLongRunning",
                headers=headers,
                json=payload,
            )
            self._raise_for_submit(response)
            data = self._json(response)
            name = data.get("name") if isinstance(data, dict) else None
            if not name:
                raise NoJobIdentifierFound(
                    "Google Veo did not return an operation name", provider=self.name
                )
            return SubmitResult(job_id=name)

        outcome = await self._poller(progress).run(submit, self._poll_once, on_job_id=on_job_id)
        return await self._finalize(outcome.result, outcome.job_id)

    async def resume(
        self,
        job_id: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        self._api_key()
        logger.info(f"Resuming Google Veo operation {job_id}")
        uri = await self._poller(progress).resume(job_id, self._poll_once)
        return await self._finalize(uri, job_id)

    async def _poll_once(self, operation_name: str) -> PollResult:
        response = await self.client.get(
            f"{GEMINI_API_BASE}/{operation_name}", headers=self._headers()
        )
        self._check_auth(response)
        response.raise_for_status()
        operation = self._json(response)
        if not isinstance(operation, dict):
            raise MalformedResponse("Google Veo returned a non-object operation", provider=self.name)

        if not operation.get("done"):
            return PollResult.pending("Rendering with Veo...")

        error = operation.get("error")
        if error:
            return PollResult.failed(error.get("message") if isinstance(error, dict) else str(error))

        uri = _video_uri(operation)
        if not uri:
            # Filtered prompts finish without samples
            return PollResult.failed("Veo finished without a generated video")
        return PollResult.done(uri)

    async def _finalize(self, uri: str, operation_name: str) -> GeneratedAsset:
        content = await self._download(uri)
        file_name = f"veo-{uuid.uuid4().hex}.mp4"

        url, warning = await persist_blob(self.storage, content, file_name, "video/mp4")
        warnings = []
        if url is None:
            url = self._save_local(content, file_name)
            warnings.append(f"{warning}; Veo clip kept locally at {url}")
            logger.warning(warnings[-1])

        return GeneratedAsset(url=self._validated(url), job_id=operation_name, warnings=warnings)

    async def _download(self, uri: str) -> bytes:
        try:
            response = await self.client.get(
                uri,
                headers={"x-goog-api-key": self._api_key()},
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to download Veo clip: {e}", provider=self.name)
        self._check_auth(response)
        if not response.is_success or not response.content:
            raise ProviderError(
                f"Failed to download Veo clip ({response.status_code})",
                provider=self.name,
                status_code=response.status_code,
            )
        return response.content

    def _save_local(self, content: bytes, file_name: str) -> str:
        self.local_dir.mkdir(parents=True, exist_ok=True)
        path = (self.local_dir / file_name).resolve()
        path.write_bytes(content)
        return path.as_uri()

