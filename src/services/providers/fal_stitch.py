"""Scene stitching with the fal.ai FFmpeg merge-videos endpoint."""

import asyncio
import logging
from typing import Optional

import httpx

from services.credentials import CredentialProvider
from services.errors import StitchingFailed
from services.job_poller import STITCH_POLL_POLICY, PollPolicy, ProgressFn
from services.providers.fal_queue import FalQueueProvider

logger = logging.getLogger(__name__)


class FalStitchAdapter(FalQueueProvider):
    """Concatenates scene clips, in order, into one master video."""

    name = "fal.ai"
    endpoint = "merge-videos"
    progress_label = "Merging videos"

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy = STITCH_POLL_POLICY,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        super().__init__(credentials, policy, client=client, cancel_event=cancel_event)

    async def stitch(
        self,
        video_urls: list[str],
        progress: Optional[ProgressFn] = None,
    ) -> str:
        """Merge clips into a single video.

        Args:
            video_urls: Clip URLs in playback order
            progress: Optional callback receiving (status message, elapsed seconds)

        Returns:
            URL of the merged video

        Raises:
            StitchingFailed: If there is nothing to stitch
        """
        if not video_urls:
            raise StitchingFailed("No videos to stitch.", provider=self.name)

        if len(video_urls) == 1:
            logger.info("Single clip, skipping merge")
            return video_urls[0]

        self._api_key()
        logger.info(f"Stitching {len(video_urls)} clips with fal.ai")
        if progress:
            progress(f"Stitching {len(video_urls)} videos together with Fal.ai...", 0.0)

        outcome = await self._run({"video_urls": list(video_urls)}, progress)
        return self._validated(outcome.result)
