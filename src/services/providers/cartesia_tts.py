"""Cartesia text-to-speech for scene narration."""

import logging
from typing import Optional

import httpx

from services.credentials import CredentialProvider
from services.errors import MissingCredential, ProviderError
from services.providers.base import HttpProvider

logger = logging.getLogger(__name__)

CARTESIA_TTS_URL = "https://api.cartesia.ai/tts/bytes"
CARTESIA_VERSION = "2024-06-10"
CARTESIA_MODEL = "sonic-3"

# WAV, 32-bit float PCM, 44.1 kHz
OUTPUT_FORMAT = {
    "container": "wav",
    "encoding": "pcm_f32le",
    "sample_rate": 44100,
}


class CartesiaTTSAdapter(HttpProvider):
    """Synthesizes narration audio with Cartesia Sonic."""

    name = "Cartesia"
    credential = "cartesia"
    auth_error_statuses = (401, 403)

    def __init__(
        self,
        credentials: CredentialProvider,
        client: Optional[httpx.AsyncClient] = None,
        model_id: str = CARTESIA_MODEL,
    ):
        # Long timeout, synthesis of a full scene can take a while
        super().__init__(credentials, client=client, timeout=120.0)
        self.model_id = model_id

    def voice_id(self) -> Optional[str]:
        return self.credentials.get("cartesia_voice")

    def is_configured(self) -> bool:
        return self.credentials.has(self.credential) and bool(self.voice_id())

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> bytes:
        """Generate narration audio for a piece of text.

        Args:
            text: Transcript to speak
            voice_id: Cartesia voice (defaults to the configured voice)

        Returns:
            WAV audio bytes

        Raises:
            MissingCredential: If the API key or voice is not configured
            AuthExpired: If Cartesia rejects the key
            ProviderError: For any other non-success response
        """
        api_key = self._api_key()
        voice_id = voice_id or self.voice_id()
        if not voice_id:
            raise MissingCredential("cartesia_voice")

        headers = {
            "X-API-Key": api_key,
            "Cartesia-Version": CARTESIA_VERSION,
            "Content-Type": "application/json",
        }
        payload = {
            "model_id": self.model_id,
            "transcript": text,
            "voice": {"mode": "id", "id": voice_id},
            "output_format": OUTPUT_FORMAT,
            "speed": "normal",
            "generation_config": {"speed": 1, "volume": 1},
        }

        logger.info(f"Synthesizing narration with Cartesia ({len(text)} chars)")
        try:
            response = await self.client.post(CARTESIA_TTS_URL, headers=headers, json=payload)
        except httpx.TimeoutException:
            raise ProviderError("Cartesia request timed out", provider=self.name)
        except httpx.HTTPError as e:
            raise ProviderError(f"Cartesia request failed: {e}", provider=self.name)

        self._raise_for_submit(response)

        audio = response.content
        if not audio:
            raise ProviderError("Cartesia returned empty audio", provider=self.name)
        logger.info(f"Cartesia narration complete: {len(audio)} bytes")
        return audio
