"""Credential lookup for provider adapters.

Keys entered by the user take precedence over environment variables. The
provider names used here are the same ones adapters report on errors.
"""

import logging
import os
from typing import Mapping, Optional

from services.errors import MissingCredential

logger = logging.getLogger(__name__)

# Provider name -> environment variables checked in order
ENV_KEYS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "API_KEY"),
    "kie": ("KIEAI_API_KEY",),
    "fal": ("FAL_API_KEY",),
    "cartesia": ("CARTESIA_API_KEY",),
    "cartesia_voice": ("CARTESIA_VOICE_ID",),
}


class CredentialProvider:
    """Resolves provider credentials from explicit overrides, then the environment."""

    def __init__(
        self,
        overrides: Optional[Mapping[str, Optional[str]]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize credential provider.

        Args:
            overrides: Values entered by the user, keyed by provider name
            environ: Environment mapping (defaults to os.environ)
        """
        self._overrides = dict(overrides or {})
        self._environ = os.environ if environ is None else environ

    def get(self, provider: str) -> Optional[str]:
        """Return the credential for a provider, or None when unset."""
        value = self._overrides.get(provider)
        if value and value.strip():
            return value.strip()

        for env_name in ENV_KEYS.get(provider, ()):
            value = self._environ.get(env_name)
            if value and value.strip():
                return value.strip()
        return None

    def require(self, provider: str) -> str:
        """Return the credential for a provider.

        Raises:
            MissingCredential: If no credential is configured
        """
        value = self.get(provider)
        if not value:
            logger.warning(f"No credential configured for {provider}")
            raise MissingCredential(provider)
        return value

    def has(self, provider: str) -> bool:
        return self.get(provider) is not None

    def set(self, provider: str, value: Optional[str]) -> None:
        """Replace the user-entered value for a provider (None clears it)."""
        if value is None:
            self._overrides.pop(provider, None)
        else:
            self._overrides[provider] = value
