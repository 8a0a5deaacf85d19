"""Unit tests for topic research and script generation."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors

from models.script import VideoEngine
from services.errors import (
    AuthExpired,
    InvalidMetadataFormat,
    InvalidScriptFormat,
    MissingCredential,
    ProviderError,
)
from services.script_generator import ScriptGenerator


def fake_client(response=None, error=None) -> MagicMock:
    """google-genai client stand-in exposing client.aio.models.generate_content."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=error)
    return client


def grounded_response(text: str, sources: list[tuple[str, str]]):
    chunks = [SimpleNamespace(web=SimpleNamespace(title=title, uri=uri)) for title, uri in sources]
    chunks.append(SimpleNamespace(web=None))
    metadata = SimpleNamespace(grounding_chunks=chunks)
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=metadata)])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_research_topic_collects_sources(credentials):
    client = fake_client(
        grounded_response(
            "1. Emus won. 2. The army retreated.",
            [("Wikipedia", "https://en.wikipedia.org/wiki/Emu_War"), ("", "https://example.org/emus")],
        )
    )
    generator = ScriptGenerator(credentials, model_name="gemini-test", client=client)

    result = await generator.research_topic("The Great Emu War")

    assert result.facts_text == "1. Emus won. 2. The army retreated."
    assert result.facts[0].title == "Research Findings"
    assert [s.uri for s in result.grounding_sources] == [
        "https://en.wikipedia.org/wiki/Emu_War",
        "https://example.org/emus",
    ]
    # Untitled sources fall back to their URI
    assert result.grounding_sources[1].title == "https://example.org/emus"

    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    assert "The Great Emu War" in kwargs["contents"]
    assert kwargs["config"].tools


@pytest.mark.unit
@pytest.mark.asyncio
async def test_research_without_grounding(credentials):
    client = fake_client(SimpleNamespace(text="Some facts", candidates=[]))
    generator = ScriptGenerator(credentials, client=client)

    result = await generator.research_topic("Emus")

    assert result.grounding_sources == []
    assert result.facts_text == "Some facts"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_script(credentials, script_json):
    client = fake_client(SimpleNamespace(text=script_json))
    generator = ScriptGenerator(credentials, client=client)

    script = await generator.generate_script(
        "The Great Emu War", "Emus won.", default_engine=VideoEngine.GOOGLE_VEO, narration_enabled=True
    )

    assert len(script.scenes) == 3
    assert script.narration_enabled is True
    assert script.scenes[0].engine == VideoEngine.GOOGLE_VEO

    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert "Facts: Emus won." in kwargs["contents"]
    assert kwargs["config"].response_mime_type == "application/json"
    assert "Histori-Bot" in kwargs["config"].system_instruction


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_script_rejects_malformed_output(credentials):
    client = fake_client(SimpleNamespace(text='{"topic": "Emus"}'))
    generator = ScriptGenerator(credentials, client=client)

    with pytest.raises(InvalidScriptFormat):
        await generator.generate_script("Emus", "facts")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_script_empty_response(credentials):
    generator = ScriptGenerator(credentials, client=fake_client(SimpleNamespace(text=None)))

    with pytest.raises(InvalidScriptFormat):
        await generator.generate_script("Emus", "facts")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejected_key_maps_to_auth_expired(credentials):
    error = errors.ClientError(
        401, {"error": {"code": 401, "message": "API key not valid", "status": "UNAUTHENTICATED"}}
    )
    generator = ScriptGenerator(credentials, client=fake_client(error=error))

    with pytest.raises(AuthExpired):
        await generator.research_topic("Emus")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_server_error_maps_to_provider_error(credentials):
    error = errors.ServerError(
        503, {"error": {"code": 503, "message": "model overloaded", "status": "UNAVAILABLE"}}
    )
    generator = ScriptGenerator(credentials, client=fake_client(error=error))

    with pytest.raises(ProviderError) as exc_info:
        await generator.generate_script("Emus", "facts")
    assert exc_info.value.status_code == 503


@pytest.mark.unit
def test_missing_key_raises_on_first_use(empty_credentials):
    generator = ScriptGenerator(empty_credentials)

    with pytest.raises(MissingCredential):
        generator.client


@pytest.mark.unit
@pytest.mark.asyncio
async def test_social_metadata_from_script(credentials, sample_script):
    body = {
        "youtubeTitle": "The Emus Won 🐦",
        "youtubeDescription": "Australia lost a war to birds. #history",
        "instagramCaption": "Machine guns vs emus #history",
    }
    client = fake_client(SimpleNamespace(text=json.dumps(body), candidates=[]))
    generator = ScriptGenerator(credentials, client=client)

    metadata = await generator.generate_social_metadata(sample_script)

    assert metadata.instagram_caption == "Machine guns vs emus #history"
    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert "The Great Emu War" in kwargs["contents"]
    assert "Australia declared war on birds." in kwargs["contents"]
    assert kwargs["config"].response_mime_type == "application/json"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_social_metadata_rejects_prose(credentials, sample_script):
    generator = ScriptGenerator(credentials, client=fake_client(SimpleNamespace(text="Here you go!", candidates=[])))

    with pytest.raises(InvalidMetadataFormat):
        await generator.generate_social_metadata(sample_script)
