"""Narration mixing with the fal.ai FFmpeg merge-audio-video endpoint."""

import asyncio
import logging
from typing import Optional

import httpx

from models.script import GeneratedAsset
from services.credentials import CredentialProvider
from services.job_poller import MIX_POLL_POLICY, PollPolicy, ProgressFn
from services.providers.fal_queue import FalQueueProvider

logger = logging.getLogger(__name__)


class FalMixAdapter(FalQueueProvider):
    """Lays a narration track over a scene clip."""

    name = "fal.ai mix"
    endpoint = "merge-audio-video"
    progress_label = "Mixing narration"

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy = MIX_POLL_POLICY,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event)

    async def mix(
        self,
        video_url: str,
        audio_url: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        """Merge an audio track into a video.

        Args:
            video_url: Hosted scene clip
            audio_url: Hosted narration audio
            progress: Optional callback receiving (status message, elapsed seconds)

        Returns:
            GeneratedAsset with the mixed video URL and the fal.ai request id
        """
        logger.info(f"Mixing narration into {video_url}")
        outcome = await self._run({"video_url": video_url, "audio_url": audio_url}, progress)
        return GeneratedAsset(url=self._validated(outcome.result), job_id=outcome.job_id)
