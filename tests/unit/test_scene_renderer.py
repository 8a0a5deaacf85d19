"""Unit tests for per-scene rendering."""

from dataclasses import replace

import pytest

from conftest import FakeMixer, FakeStorage, FakeTTS, FakeVideoProvider
from models.script import AssetType, Scene, SceneStage, SceneUpdate, VideoEngine
from services.errors import (
    AuthExpired,
    GenerationCancelled,
    GenerationFailed,
    GenerationTimeout,
    ProviderError,
    SceneRenderError,
)
from studio.scene_renderer import SceneRenderer
from utils.progress import ProgressChannel


def scene(**overrides) -> Scene:
    values = dict(id="s1", timestamp="0:00", text="The emus won.", visual_prompt="Emus on a hill")
    values.update(overrides)
    return Scene(**values)


def renderer(video=None, **kwargs) -> SceneRenderer:
    engines = kwargs.pop("engines", None) or {VideoEngine.KIE_VEO: video or FakeVideoProvider()}
    kwargs.setdefault("progress", ProgressChannel())
    return SceneRenderer(engines=engines, **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_renders_video_scene():
    video = FakeVideoProvider(["https://cdn.example/clip.mp4"])
    job_ids = []
    update = await renderer(video).render(
        scene(),
        0,
        topic="Emu War",
        on_job_id=lambda scene_id, job_id, engine: job_ids.append((scene_id, job_id, engine)),
    )

    assert update.asset_url == "https://cdn.example/clip.mp4"
    assert update.provider_job_id == "job-1"
    assert update.rendered_prompt == "Emus on a hill"
    assert update.stage == SceneStage.DONE
    assert update.skipped is False
    assert job_ids == [("s1", "job-1", VideoEngine.KIE_VEO)]
    assert video.generate_calls[0].topic == "Emu War"
    assert video.generate_calls[0].scene_text == "The emus won."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_does_not_mutate_scene():
    original = scene()
    snapshot = replace(original)
    await renderer().render(original, 0)
    assert original == snapshot


@pytest.mark.unit
@pytest.mark.asyncio
async def test_existing_asset_short_circuits():
    video = FakeVideoProvider()
    done = scene(asset_url="https://cdn.example/old.mp4", rendered_prompt="Emus on a hill")
    channel = ProgressChannel()

    update = await renderer(video, progress=channel).render(done, 0)

    assert update.skipped is True
    assert update.asset_url == "https://cdn.example/old.mp4"
    assert update.stage == SceneStage.DONE
    assert video.calls == 0
    assert any("Using existing video" in e.message for e in channel.history)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_edited_prompt_regenerates():
    video = FakeVideoProvider(["https://cdn.example/new.mp4"])
    stale = scene(
        asset_url="https://cdn.example/old.mp4",
        provider_job_id="job-old",
        rendered_prompt="An older prompt",
    )

    update = await renderer(video).render(stale, 0)

    assert update.asset_url == "https://cdn.example/new.mp4"
    assert video.resume_calls == []
    assert len(video.generate_calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_existing_url_regenerates():
    video = FakeVideoProvider(["https://cdn.example/new.mp4"])
    update = await renderer(video).render(scene(asset_url="not-a-url"), 0)
    assert update.asset_url == "https://cdn.example/new.mp4"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_in_flight_job_is_resumed():
    video = FakeVideoProvider(resume_url="https://cdn.example/resumed.mp4")
    pending = scene(provider_job_id="task-77")

    update = await renderer(video).render(pending, 0)

    assert video.resume_calls == ["task-77"]
    assert video.generate_calls == []
    assert update.asset_url == "https://cdn.example/resumed.mp4"
    assert update.provider_job_id == "task-77"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_immediate_job_id_is_not_resumed():
    video = FakeVideoProvider(["https://cdn.example/new.mp4"])
    update = await renderer(video).render(scene(provider_job_id="immediate"), 0)

    assert video.resume_calls == []
    assert update.asset_url == "https://cdn.example/new.mp4"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_image_scene_uses_image_provider():
    video = FakeVideoProvider()
    image = FakeVideoProvider(["https://cdn.example/still.png"])

    update = await renderer(video, image_provider=image).render(scene(asset_type=AssetType.IMAGE), 0)

    assert update.asset_url == "https://cdn.example/still.png"
    assert video.calls == 0
    assert len(image.generate_calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_force_video_rerenders_image_scene():
    video = FakeVideoProvider(["https://cdn.example/clip.mp4"])
    image_scene = scene(
        asset_type=AssetType.IMAGE,
        asset_url="https://cdn.example/still.png",
        rendered_prompt="Emus on a hill",
    )

    update = await renderer(video).render(image_scene, 0, force_video=True, require_remote=True)

    assert update.asset_url == "https://cdn.example/clip.mp4"
    assert len(video.generate_calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failure_carries_index_and_stage():
    video = FakeVideoProvider([GenerationFailed("content policy", provider="KIE AI")])

    with pytest.raises(SceneRenderError) as exc_info:
        await renderer(video).render(scene(id="s2"), 1)

    error = exc_info.value
    assert error.scene_index == 1
    assert error.scene_id == "s2"
    assert error.stage == SceneStage.GENERATING_VISUAL.value
    assert "Scene 2" in str(error)
    assert isinstance(error.cause, GenerationFailed)
    assert error.needs_reauth is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejected_key_needs_reauth():
    video = FakeVideoProvider([AuthExpired("KIE AI")])

    with pytest.raises(SceneRenderError) as exc_info:
        await renderer(video).render(scene(), 0)

    assert exc_info.value.needs_reauth is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_provider_url_fails_scene():
    video = FakeVideoProvider(["file:///tmp/clip.mp4"])

    with pytest.raises(SceneRenderError):
        await renderer(video).render(scene(), 0, require_remote=True)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancellation_is_not_wrapped():
    video = FakeVideoProvider([GenerationCancelled("stopped")])

    with pytest.raises(GenerationCancelled):
        await renderer(video).render(scene(), 0)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fallback_engine_used_once():
    primary = FakeVideoProvider([GenerationTimeout("KIE AI", "job-1", 120)])
    fallback = FakeVideoProvider(["https://cdn.example/sora.mp4"])
    channel = ProgressChannel()
    r = renderer(
        engines={VideoEngine.KIE_VEO: primary, VideoEngine.KIE_SORA: fallback},
        fallback_engine=VideoEngine.KIE_SORA,
        progress=channel,
    )

    update = await r.render(scene(), 0)

    assert update.asset_url == "https://cdn.example/sora.mp4"
    assert update.engine == VideoEngine.KIE_SORA
    assert update.provider_job_id == "job-1"
    assert len(fallback.generate_calls) == 1
    assert len(update.warnings) == 1
    assert channel.warnings == update.warnings


@pytest.mark.unit
@pytest.mark.asyncio
async def test_interrupted_fallback_job_resumes_on_fallback_engine(sample_script):
    primary = FakeVideoProvider([GenerationFailed("content policy")])
    fallback = FakeVideoProvider([GenerationCancelled("stopped")], resume_url="https://cdn.example/sora.mp4")
    fallback.counter = 40
    engines = {VideoEngine.KIE_VEO: primary, VideoEngine.KIE_SORA: fallback}
    saved = sample_script

    def persist(scene_id, job_id, engine):
        nonlocal saved
        saved = saved.apply_updates([SceneUpdate(scene_id=scene_id, provider_job_id=job_id, engine=engine)])

    with pytest.raises(GenerationCancelled):
        await renderer(engines=engines, fallback_engine=VideoEngine.KIE_SORA).render(
            saved.scenes[0], 0, on_job_id=persist
        )

    assert saved.scenes[0].engine == VideoEngine.KIE_SORA
    assert saved.scenes[0].provider_job_id == "job-41"

    update = await renderer(engines=engines, fallback_engine=VideoEngine.KIE_SORA).render(saved.scenes[0], 0)

    assert update.asset_url == "https://cdn.example/sora.mp4"
    assert fallback.resume_calls == ["job-41"]
    assert primary.resume_calls == []
    assert len(primary.generate_calls) == 1
    assert len(fallback.generate_calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_no_fallback_for_auth_errors():
    primary = FakeVideoProvider([AuthExpired("KIE AI")])
    fallback = FakeVideoProvider()
    r = renderer(
        engines={VideoEngine.KIE_VEO: primary, VideoEngine.KIE_SORA: fallback},
        fallback_engine=VideoEngine.KIE_SORA,
    )

    with pytest.raises(SceneRenderError):
        await r.render(scene(), 0)
    assert fallback.calls == 0


def narrating(video=None, tts=None, storage=None, mixer=None, **kwargs) -> SceneRenderer:
    return renderer(
        video or FakeVideoProvider(["https://cdn.example/clip.mp4"]),
        tts=tts if tts is not None else FakeTTS(),
        storage=storage if storage is not None else FakeStorage(),
        mixer=mixer if mixer is not None else FakeMixer(),
        **kwargs,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_narration_is_mixed():
    tts, storage, mixer = FakeTTS(), FakeStorage(), FakeMixer()

    update = await narrating(tts=tts, storage=storage, mixer=mixer).render(
        scene(), 0, narration_enabled=True
    )

    assert tts.texts == ["The emus won."]
    assert storage.uploads[0][0].startswith("narration-s1-")
    assert storage.uploads[0][1] == "audio/wav"
    assert update.audio_url.startswith("https://cdn.example/narration-s1-")
    assert mixer.calls == [("https://cdn.example/clip.mp4", update.audio_url)]
    assert update.asset_url == "https://cdn.example/clip-mixed.mp4"
    assert update.stage == SceneStage.DONE
    assert update.warnings == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_narration_disabled_by_scene_override():
    tts = FakeTTS()
    update = await narrating(tts=tts).render(scene(use_narration=False), 0, narration_enabled=True)

    assert tts.texts == []
    assert update.asset_url == "https://cdn.example/clip.mp4"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_existing_audio_is_reused():
    tts, mixer = FakeTTS(), FakeMixer()
    with_audio = scene(audio_url="https://cdn.example/voice.wav")

    update = await narrating(tts=tts, mixer=mixer).render(with_audio, 0, narration_enabled=True)

    assert tts.texts == []
    assert mixer.calls[0][1] == "https://cdn.example/voice.wav"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "tts,storage,mixer",
    [
        (FakeTTS(error=ProviderError("Cartesia overloaded")), None, None),
        (None, FakeStorage(fail=True), None),
        (None, None, FakeMixer(error=GenerationFailed("mix crashed"))),
    ],
    ids=["tts", "upload", "mix"],
)
async def test_narration_failure_keeps_unmixed_video(tts, storage, mixer):
    update = await narrating(tts=tts, storage=storage, mixer=mixer).render(
        scene(), 0, narration_enabled=True
    )

    assert update.asset_url == "https://cdn.example/clip.mp4"
    assert update.stage == SceneStage.DONE
    assert len(update.warnings) == 1
    assert "Narration failed" in update.warnings[0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_narration_skipped_without_voice():
    update = await narrating(tts=FakeTTS(configured=False)).render(scene(), 0, narration_enabled=True)

    assert update.asset_url == "https://cdn.example/clip.mp4"
    assert "Narration skipped" in update.warnings[0]

