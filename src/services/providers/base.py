"""Base abstractions for generation providers."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from models.script import GeneratedAsset, VideoStyle
from services.credentials import CredentialProvider
from services.errors import (
    AuthExpired,
    MalformedResponse,
    ProviderError,
    SceneValidationError,
    StorageError,
)
from services.extraction import is_valid_asset_url
from services.job_poller import JobPoller, PollPolicy, ProgressFn

logger = logging.getLogger(__name__)

# Job id reported when a provider answered synchronously
IMMEDIATE_JOB_ID = "immediate"


@dataclass
class GenerationRequest:
    """What to generate for one scene."""

    prompt: str
    scene_text: Optional[str] = None
    topic: Optional[str] = None
    style: VideoStyle = VideoStyle.CINEMATIC
    aspect_ratio: str = "9:16"


class HttpProvider:
    """Shared HTTP plumbing for providers reached over REST.

    Subclasses set ``name`` (used in errors) and ``credential`` (the
    CredentialProvider key) and call the helpers below to map transport
    failures into the pipeline's error types.
    """

    name: str = "provider"
    credential: str = ""
    # HTTP statuses that mean the key was rejected
    auth_error_statuses: tuple[int, ...] = (401,)
    # Whether file:// and data: results are acceptable
    allow_local_urls: bool = False

    def __init__(
        self,
        credentials: CredentialProvider,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        """Initialize provider.

        Args:
            credentials: Source of API keys
            client: HTTP client to use (a new one is created if omitted)
            timeout: Request timeout for a newly created client
        """
        self.credentials = credentials
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def is_configured(self) -> bool:
        return self.credentials.has(self.credential)

    def _api_key(self) -> str:
        return self.credentials.require(self.credential)

    def _check_auth(self, response: httpx.Response) -> None:
        if response.status_code in self.auth_error_statuses:
            logger.warning(f"{self.name} rejected the API key (HTTP {response.status_code})")
            raise AuthExpired(self.name, response.status_code)

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        """POST a submission, mapping transport failures to ProviderError."""
        try:
            return await self.client.post(url, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"{self.name} request timed out: {url}")
            raise ProviderError(f"{self.name} request timed out", provider=self.name)
        except httpx.HTTPError as e:
            logger.error(f"{self.name} request failed: {e}")
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name)

    def _raise_for_submit(self, response: httpx.Response) -> None:
        """Map a non-success submission response to AuthExpired or ProviderError."""
        self._check_auth(response)
        if response.is_success:
            return

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        detail = None
        if isinstance(error_data, dict):
            detail = (
                error_data.get("message")
                or error_data.get("msg")
                or error_data.get("error")
                or error_data.get("detail")
            )
            if isinstance(detail, dict):
                detail = detail.get("message") or json.dumps(detail)
        detail = detail or response.text or response.reason_phrase
        logger.error(f"{self.name} API error ({response.status_code}): {detail}")
        raise ProviderError(
            f"{self.name} API error ({response.status_code}): {detail}",
            provider=self.name,
            status_code=response.status_code,
        )

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, raising MalformedResponse with a short excerpt on failure."""
        try:
            return response.json()
        except ValueError:
            raise MalformedResponse(
                f"Invalid JSON response from {self.name}: {response.text[:200]}",
                provider=self.name,
            )

    def _validated(self, url: Optional[str]) -> str:
        if not is_valid_asset_url(url, allow_local=self.allow_local_urls):
            raise SceneValidationError(
                f"{self.name} returned an invalid URL: {url!r}",
                provider=self.name,
            )
        return url.strip()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


class PollingProvider(HttpProvider):
    """HttpProvider whose jobs are driven by a JobPoller."""

    def __init__(
        self,
        credentials: CredentialProvider,
        policy: PollPolicy,
        client: Optional[httpx.AsyncClient] = None,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: float = 60.0,
    ):
        super().__init__(credentials, client=client, timeout=timeout)
        self.policy = policy
        self.cancel_event = cancel_event

    def _poller(self, progress: Optional[ProgressFn] = None) -> JobPoller:
        return JobPoller(self.name, self.policy, progress=progress, cancel_event=self.cancel_event)


class VideoProvider(ABC):
    """Interface for providers that turn a prompt into a hosted asset."""

    @abstractmethod
    async def generate(
        self,
        request: GenerationRequest,
        on_job_id: Optional[Callable[[str], None]] = None,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        """Generate an asset for a scene.

        Args:
            request: Prompt and scene context
            on_job_id: Called with the provider job id as soon as it is issued
            progress: Optional callback receiving (status message, elapsed seconds)

        Returns:
            GeneratedAsset with a validated URL and the job id it ran under
        """

    @abstractmethod
    async def resume(
        self,
        job_id: str,
        progress: Optional[ProgressFn] = None,
    ) -> GeneratedAsset:
        """Wait for a previously submitted job without resubmitting it.

        Args:
            job_id: Provider job id recorded on the scene
            progress: Optional callback receiving (status message, elapsed seconds)

        Returns:
            GeneratedAsset for the existing job
        """

    def is_configured(self) -> bool:
        """Check if this provider has the credentials it needs."""
        return True

    async def close(self) -> None:
        """Release any held resources."""


class AssetStorage(ABC):
    """Durable storage that turns bytes into a public URL."""

    name: str = "storage"

    @abstractmethod
    async def upload(self, data: bytes, file_name: str, content_type: str) -> str:
        """Upload bytes and return their absolute http(s) URL.

        Args:
            data: File contents
            file_name: Object name, unique per upload
            content_type: MIME type stored with the object

        Returns:
            Public URL of the uploaded object

        Raises:
            StorageError: If the upload fails
        """

    def is_configured(self) -> bool:
        return True


async def persist_blob(
    storage: Optional[AssetStorage],
    data: bytes,
    file_name: str,
    content_type: str,
) -> tuple[Optional[str], Optional[str]]:
    """Upload a locally held blob if storage is available.

    Returns:
        (url, None) on success, or (None, warning) when the blob must stay local
    """
    if storage is None or not storage.is_configured():
        return None, "No durable storage configured"
    try:
        return await storage.upload(data, file_name, content_type), None
    except StorageError as e:
        logger.warning(f"Upload of {file_name} failed: {e}")
        return None, f"Upload to {storage.name} failed: {e}"
