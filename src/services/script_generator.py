"""Topic research and script generation using Google GenAI."""

import logging
from typing import Any, Optional

from google.genai import Client, errors, types

from models.script import Fact, GroundingSource, ResearchResult, Script, SocialMetadata, VideoEngine
from services.credentials import CredentialProvider
from services.errors import AuthExpired, InvalidScriptFormat, ProviderError
from services.prompts import (
    HISTORI_SCRIPT_V1,
    PROMPT_VERSIONS,
    RESEARCH_V1,
    SCRIPT_REQUEST_V1,
    SOCIAL_METADATA_V1,
)
from services.script_contract import parse_script, parse_social_metadata

logger = logging.getLogger(__name__)

PROVIDER = "gemini"


class ScriptGenerator:
    """Researches a topic and turns it into a validated Script with Gemini."""

    def __init__(
        self,
        credentials: CredentialProvider,
        model_name: str = "gemini-3-flash-preview",
        client: Optional[Any] = None,
    ):
        """Initialize script generator.

        Args:
            credentials: Source of the Gemini API key
            model_name: Gemini text model to use
            client: Pre-built google-genai client (created lazily otherwise)
        """
        self.credentials = credentials
        self.model_name = model_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = Client(api_key=self.credentials.require(PROVIDER))
            logger.info(f"Initialized script generator with model: {self.model_name}")
        return self._client

    async def research_topic(self, topic: str) -> ResearchResult:
        """Find bizarre, ironic facts about a topic using Google Search grounding.

        Args:
            topic: Historical topic to research

        Returns:
            ResearchResult with a single findings block and its web sources
        """
        logger.info(f"Researching topic '{topic}' (prompt {PROMPT_VERSIONS['research_topic']})")
        response = await self._generate(
            RESEARCH_V1.format(topic=topic),
            types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )

        sources = []
        candidates = getattr(response, "candidates", None) or []
        metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None
        for chunk in getattr(metadata, "grounding_chunks", None) or []:
            web = getattr(chunk, "web", None)
            if web is not None and getattr(web, "uri", None):
                sources.append(GroundingSource(title=web.title or web.uri, uri=web.uri))

        logger.info(f"Research for '{topic}' returned {len(sources)} grounding sources")
        return ResearchResult(
            facts=[Fact(title="Research Findings", content=response.text or "")],
            grounding_sources=sources,
        )

    async def generate_script(
        self,
        topic: str,
        facts: str,
        default_engine: VideoEngine = VideoEngine.KIE_VEO,
        narration_enabled: bool = False,
    ) -> Script:
        """Generate a scene-by-scene script for a topic.

        Args:
            topic: Historical topic
            facts: Research text the script should draw on
            default_engine: Video engine assigned to every scene
            narration_enabled: Script-level narration flag

        Returns:
            Validated Script

        Raises:
            InvalidScriptFormat: If the model output does not match the script shape
        """
        logger.info(f"Generating script for '{topic}' (prompt {PROMPT_VERSIONS['generate_script']})")
        response = await self._generate(
            SCRIPT_REQUEST_V1.format(topic=topic, facts=facts),
            types.GenerateContentConfig(
                system_instruction=HISTORI_SCRIPT_V1,
                response_mime_type="application/json",
            ),
        )

        text = response.text
        if not text:
            raise InvalidScriptFormat("Invalid script format received from AI: empty response")
        return parse_script(text, default_engine=default_engine, narration_enabled=narration_enabled)

    async def generate_social_metadata(self, script: Script) -> SocialMetadata:
        """Write a YouTube title and description plus an Instagram caption for a script.

        Raises:
            InvalidMetadataFormat: If the model output is not the expected JSON object
        """
        logger.info(
            f"Generating social metadata for '{script.topic}' (prompt {PROMPT_VERSIONS['social_metadata']})"
        )
        response = await self._generate(
            SOCIAL_METADATA_V1.format(topic=script.topic, hook=script.hook, body=script.body),
            types.GenerateContentConfig(response_mime_type="application/json"),
        )
        return parse_social_metadata(response.text)

    async def _generate(self, contents: str, config: types.GenerateContentConfig) -> Any:
        try:
            return await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except errors.APIError as e:
            if e.code in (401, 403):
                raise AuthExpired(PROVIDER, e.code)
            logger.error(f"Gemini API error ({e.code}): {e.message}")
            raise ProviderError(f"Gemini API error: {e.message}", provider=PROVIDER, status_code=e.code)
