"""Gemini image generation for image-type scenes."""

import base64
import binascii
import logging
import uuid
from typing import Callable, Optional

import httpx

from models.script import GeneratedAsset
from services.credentials import CredentialProvider
from services.errors import GenerationFailed, MalformedResponse, ProviderError
from services.job_poller import ProgressFn
from services.prompts import build_image_prompt
from services.providers.base import (
    IMMEDIATE_JOB_ID,
    AssetStorage,
    GenerationRequest,
    HttpProvider,
    VideoProvider,
    persist_blob,
)
from services.providers.google_veo import GEMINI_API_BASE

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


class GeminiImageAdapter(HttpProvider, VideoProvider):
    """Generates still images with Gemini 2.5 Flash Image.

    The image arrives inline in the response, so there is no job to poll.
    """

    name = "Gemini image"
    credential = "gemini"
    auth_error_statuses = (401, 403)
    allow_local_urls = True

    def __init__(
        self,
        credentials: CredentialProvider,
        storage: Optional[AssetStorage] = None,
        client: Optional[httpx.AsyncClient] = None,
        model: str = DEFAULT_IMAGE_MODEL,
    ):
        super().__init__(credentials, client=client, timeout=120.0)
        self.storage = storage
        self.model = model

    async def generate(
        self,
        request: GenerationRequest,
        on_job_id: Optional[Callable[[str], None]] = None,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        headers = {
            "x-goog-api-key": self._api_key(),
            "Content-Type": "application/json",
        }
        payload = {
            "contents": [{"parts": [{"text": build_image_prompt(request.prompt)}]}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": request.aspect_ratio},
            },
        }

        if progress:
            progress("Generating image with Gemini...", 0.0)
        logger.info(f"Generating image with Gemini ({self.model}, aspect={request.aspect_ratio})")

        try:
            response = await self.client.post(
                f"{GEMINI_API_BASE}/models/{self.model}:generateContent",
                headers=headers,
                json=payload,
            )
        except httpx.TimeoutException:
            raise ProviderError("Gemini image request timed out", provider=self.name)
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini image request failed: {e}", provider=self.name)

        self._raise_for_submit(response)
        data = self._json(response)

        inline = None
        candidates = data.get("candidates", []) if isinstance(data, dict) else []
        if candidates:
            for part in (candidates[0].get("content") or {}).get("parts", []):
                if (part.get("inlineData") or {}).get("data"):
                    inline = part["inlineData"]
                    break

        if inline is None:
            raise GenerationFailed("No image generated", provider=self.name)

        mime_type = inline.get("mimeType", "image/png")
        try:
            image_bytes = base64.b64decode(inline["data"], validate=True)
        except (binascii.Error, ValueError):
            raise MalformedResponse("Gemini returned undecodable image data", provider=self.name)

        file_name = f"image-{uuid.uuid4().hex}.{IMAGE_EXTENSIONS.get(mime_type, 'png')}"
        url, warning = await persist_blob(self.storage, image_bytes, file_name, mime_type)
        warnings = []
        if url is None:
            url = f"data:{mime_type};base64,{inline['data']}"
            warnings.append(f"{warning}; image kept as an inline data URL")
            logger.warning(warnings[-1])

        return GeneratedAsset(url=self._validated(url), job_id=IMMEDIATE_JOB_ID, warnings=warnings)

    async def resume(
        self,
        job_id: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        raise ProviderError(
            f"Gemini image generation is synchronous; job {job_id} cannot be resumed",
            provider=self.name,
        )
