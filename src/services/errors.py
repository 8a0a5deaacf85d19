"""Error taxonomy for the generation pipeline.

Adapters translate transport failures into these types at their boundary so
that callers can decide between re-authenticating, retrying, and aborting.
"""

from typing import Optional


class StudioError(Exception):
    """Base class for every pipeline error."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class MissingCredential(StudioError):
    """No credential is configured for a provider."""

    def __init__(self, provider: str):
        super().__init__(
            f"{provider} API key is missing. Add it in Settings or the environment.",
            provider=provider,
        )


class AuthExpired(StudioError):
    """The provider rejected the credential; the user must re-authenticate."""

    def __init__(self, provider: str, status_code: int = 401):
        super().__init__(
            f"{provider} rejected the API key (HTTP {status_code}). Please re-authenticate.",
            provider=provider,
        )
        self.status_code = status_code


class MalformedResponse(StudioError):
    """A response body did not parse or matched no known result field."""


class NoJobIdentifierFound(StudioError):
    """A submission succeeded but yielded neither a result nor a job id."""


class ProviderError(StudioError):
    """The provider answered a submission with a non-success status."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, provider=provider)
        self.status_code = status_code


class GenerationTimeout(StudioError):
    """Polling attempts were exhausted while the job was still pending."""

    def __init__(self, provider: Optional[str], job_id: str, attempts: int):
        super().__init__(
            f"{provider or 'Provider'} job {job_id} did not complete after {attempts} polls",
            provider=provider,
        )
        self.job_id = job_id
        self.attempts = attempts


class GenerationFailed(StudioError):
    """The provider reported a terminal failure for the job."""

    def __init__(self, reason: str, provider: Optional[str] = None, job_id: Optional[str] = None):
        super().__init__(f"Generation failed: {reason}", provider=provider)
        self.reason = reason
        self.job_id = job_id


class GenerationCancelled(StudioError):
    """Local polling was stopped by the caller's cancellation signal."""


class StorageError(StudioError):
    """Durable object storage rejected or failed an upload."""


class SceneValidationError(StudioError):
    """An asset URL did not have an accepted shape."""


class InvalidScriptFormat(StudioError):
    """The text-generation output is not a valid script document."""


class InvalidMetadataFormat(StudioError):
    """The text-generation output is not a valid social metadata document."""


class StitchingFailed(StudioError):
    """The stitcher timed out, failed, or returned an invalid URL."""


class SceneRenderError(StudioError):
    """A scene could not be rendered; carries the position and stage."""

    def __init__(
        self,
        scene_index: int,
        scene_id: str,
        stage: str,
        cause: Exception,
    ):
        provider = getattr(cause, "provider", None)
        super().__init__(
            f"Failed to generate video for Scene {scene_index + 1} ({scene_id}) "
            f"during {stage}: {cause}",
            provider=provider,
        )
        self.scene_index = scene_index
        self.scene_id = scene_id
        self.stage = stage
        self.cause = cause

    @property
    def needs_reauth(self) -> bool:
        """True when the underlying failure is a rejected credential."""
        return isinstance(self.cause, AuthExpired)
