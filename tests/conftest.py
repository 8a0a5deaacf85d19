"""Shared pytest fixtures for Histori Studio tests."""

import json
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional

import httpx
import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from models.script import GeneratedAsset, Scene, Script, VideoEngine  # noqa: E402
from services.credentials import CredentialProvider  # noqa: E402
from services.job_poller import PollPolicy  # noqa: E402
from services.providers.base import AssetStorage, VideoProvider  # noqa: E402

# Zero-interval polling so tests never sleep
FAST_POLICY = PollPolicy(interval_seconds=0, max_attempts=5)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def unreachable(request: httpx.Request) -> httpx.Response:
    """MockTransport handler for a host that refuses connections."""
    raise httpx.ConnectError("connection refused", request=request)


class FakeVideoProvider(VideoProvider):
    """Scripted video provider.

    Each generate() call consumes the next outcome: a URL string or an
    exception instance to raise.
    """

    def __init__(self, outcomes: Optional[list] = None, resume_url: str = "https://cdn.example/resumed.mp4"):
        self.outcomes = list(outcomes or [])
        self.resume_url = resume_url
        self.generate_calls: list = []
        self.resume_calls: list[str] = []
        self.counter = 0

    async def generate(self, request, on_job_id=None, progress=None) -> GeneratedAsset:
        self.generate_calls.append(request)
        self.counter += 1
        job_id = f"job-{self.counter}"
        if on_job_id is not None:
            on_job_id(job_id)
        if progress is not None:
            progress("Processing...", 0.0)
        outcome = self.outcomes.pop(0) if self.outcomes else f"https://cdn.example/clip-{self.counter}.mp4"
        if isinstance(outcome, Exception):
            raise outcome
        return GeneratedAsset(url=outcome, job_id=job_id)

    async def resume(self, job_id, progress=None) -> GeneratedAsset:
        self.resume_calls.append(job_id)
        return GeneratedAsset(url=self.resume_url, job_id=job_id)

    @property
    def calls(self) -> int:
        return len(self.generate_calls) + len(self.resume_calls)


class FakeStorage(AssetStorage):
    name = "fake storage"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: list[tuple[str, str, int]] = []

    async def upload(self, data: bytes, file_name: str, content_type: str) -> str:
        from services.errors import StorageError

        if self.fail:
            raise StorageError("bucket unavailable")
        self.uploads.append((file_name, content_type, len(data)))
        return f"https://cdn.example/{file_name}"


class FakeTTS:
    def __init__(self, configured: bool = True, error: Optional[Exception] = None):
        self.configured = configured
        self.error = error
        self.texts: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> bytes:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return b"RIFF\x00\x00\x00\x00WAVEfmt "


class FakeMixer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def is_configured(self) -> bool:
        return True

    async def mix(self, video_url: str, audio_url: str, progress=None) -> GeneratedAsset:
        self.calls.append((video_url, audio_url))
        if self.error is not None:
            raise self.error
        return GeneratedAsset(url=video_url.replace(".mp4", "-mixed.mp4"), job_id="mix-1")


class FakeStitcher:
    def __init__(self, result: str = "https://cdn.example/master.mp4", error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: list[list[str]] = []

    async def stitch(self, video_urls: list[str], progress=None) -> str:
        self.calls.append(list(video_urls))
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self) -> None:
        pass


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def credentials() -> CredentialProvider:
    """Credentials for every provider, isolated from the real environment."""
    return CredentialProvider(
        overrides={
            "gemini": "test_gemini_key",
            "kie": "test_kie_key",
            "fal": "test_fal_key",
            "cartesia": "test_cartesia_key",
            "cartesia_voice": "voice-123",
        },
        environ={},
    )


@pytest.fixture
def empty_credentials() -> CredentialProvider:
    return CredentialProvider(environ={})


@pytest.fixture
def script_payload() -> dict:
    """Script document in the shape the text model returns."""
    return {
        "topic": "The Great Emu War",
        "hook": "Australia declared war on birds. The birds won.",
        "body": "In 1932 soldiers with machine guns lost to emus.",
        "outro": "Follow for more forbidden history.",
        "scenes": [
            {
                "id": "1",
                "timestamp": "0:00",
                "text": "Australia declared war on birds.",
                "visualPrompt": "A 1930s soldier with a handlebar mustache in the outback.",
                "assetType": "video",
            },
            {
                "id": "2",
                "timestamp": "0:05",
                "text": "The emus did not care.",
                "visualPrompt": "The SAME soldier chased by emus across the dusty plain.",
                "assetType": "video",
            },
            {
                "id": "3",
                "timestamp": "0:10",
                "text": "The birds won.",
                "visualPrompt": "Emus standing victorious on a hill at sunset.",
                "assetType": "image",
            },
        ],
    }


@pytest.fixture
def script_json(script_payload) -> str:
    return json.dumps(script_payload)


@pytest.fixture
def sample_script() -> Script:
    """Three-scene script with no generated assets."""
    return Script(
        topic="The Great Emu War",
        hook="Australia declared war on birds.",
        body="Machine guns versus emus.",
        outro="Follow for more.",
        scenes=[
            Scene(
                id=f"s{i}",
                timestamp=f"0:{i * 5:02d}",
                text=f"Scene text {i}",
                visual_prompt=f"Visual prompt {i}",
                engine=VideoEngine.KIE_VEO,
            )
            for i in range(1, 4)
        ],
    )


@pytest.fixture
def sample_config(temp_dir) -> dict:
    """Configuration dict as returned by load_config."""
    return {
        "gemini_api_key": "test_gemini_key",
        "kie_api_key": "test_kie_key",
        "fal_api_key": "test_fal_key",
        "cartesia_api_key": None,
        "cartesia_voice_id": None,
        "r2_account_id": None,
        "r2_access_key_id": None,
        "r2_secret_access_key": None,
        "r2_bucket_name": "histori-studio",
        "r2_public_url": None,
        "gemini_model": "gemini-3-flash-preview",
        "gemini_image_model": "gemini-2.5-flash-image",
        "google_veo_model": "veo-3.1-fast-generate-preview",
        "default_video_engine": "kie_veo",
        "fallback_video_engine": None,
        "video_style": "cinematic",
        "aspect_ratio": "9:16",
        "narration_enabled": False,
        "video_poll_interval": 0.0,
        "video_poll_max_attempts": 5,
        "stitch_poll_interval": 0.0,
        "stitch_poll_max_attempts": 5,
        "mix_poll_interval": 0.0,
        "mix_poll_max_attempts": 5,
        "google_veo_poll_interval": 0.0,
        "google_veo_poll_max_attempts": 5,
        "kie_pending_error_codes": [],
        "local_asset_dir": str(temp_dir / "assets"),
        "log_level": "INFO",
        "log_json": False,
    }
