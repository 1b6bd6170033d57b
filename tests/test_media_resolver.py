from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest
from PIL import Image

from scene_reel.errors import MediaResolutionError
from scene_reel.models.media import MediaSlot, UploadedMedia, build_slots
from scene_reel.models.script import SceneDescriptor
from scene_reel.nodes import media_resolver
from scene_reel.nodes.media_resolver import resolve_media, resolve_slot
from scene_reel.tools import placeholder


def _slot(**overrides) -> MediaSlot:
    fields = {
        "key": "scene_0",
        "index": 1,
        "form_key": "media_0",
        "fallback_label": "The Matrix",
        "allow_lookup": True,
    }
    fields.update(overrides)
    return MediaSlot(**fields)


def test_slots_are_ordered_intro_scenes_outro():
    slots = build_slots("Topic", [SceneDescriptor(name="A"), SceneDescriptor(name="")], allow_lookup=True)
    assert [s.key for s in slots] == ["intro", "scene_0", "scene_1", "outro"]
    assert [s.index for s in slots] == [0, 1, 2, 3]
    assert [s.form_key for s in slots] == ["media_intro", "media_0", "media_1", "media_outro"]
    assert slots[0].fallback_label == "Topic"
    assert slots[-1].fallback_label == "Thanks for watching!"
    assert not slots[0].allow_lookup and not slots[-1].allow_lookup
    assert slots[1].allow_lookup


def test_upload_is_saved_verbatim_and_skips_lookup(tmp_path, monkeypatch):
    async def _never(*args, **kwargs):
        raise AssertionError("lookup must not run when a file was uploaded")

    monkeypatch.setattr(media_resolver, "download_poster", _never)
    upload = UploadedMedia(filename="clip.MOV", content=b"moov")

    source = asyncio.run(resolve_slot(_slot(), upload, tmp_path, "short"))

    assert source.kind == "video"
    assert source.origin == "upload"
    assert Path(source.file_path).name == "media_0.MOV"
    assert Path(source.file_path).read_bytes() == b"moov"


def test_upload_without_extension_defaults_to_image(tmp_path):
    upload = UploadedMedia(filename="poster", content=b"jpegdata")
    source = asyncio.run(resolve_slot(_slot(), upload, tmp_path, "short"))
    assert source.kind == "image"
    assert source.file_path.endswith("media_0.jpg")


def test_lookup_hit(tmp_path, monkeypatch, fake_placeholder):
    async def _poster(query, output_path):
        assert query == "The Matrix"
        Path(output_path).write_bytes(b"poster")
        return output_path

    monkeypatch.setattr(media_resolver, "download_poster", _poster)
    source = asyncio.run(resolve_slot(_slot(), None, tmp_path, "short"))

    assert source.origin == "lookup"
    assert source.kind == "image"
    assert fake_placeholder == []


@pytest.mark.parametrize(
    "failure",
    [httpx.ConnectError("dns"), httpx.ReadTimeout("slow"), RuntimeError("empty")],
)
def test_lookup_failure_falls_through_to_placeholder(tmp_path, monkeypatch, fake_placeholder, failure):
    async def _poster(query, output_path):
        raise failure

    monkeypatch.setattr(media_resolver, "download_poster", _poster)
    source = asyncio.run(resolve_slot(_slot(), None, tmp_path, "short"))

    assert source.origin == "placeholder"
    assert fake_placeholder == ["The Matrix"]


def test_lookup_miss_falls_through_to_placeholder(tmp_path, monkeypatch, fake_placeholder):
    async def _poster(query, output_path):
        return None

    monkeypatch.setattr(media_resolver, "download_poster", _poster)
    source = asyncio.run(resolve_slot(_slot(), None, tmp_path, "long"))
    assert source.origin == "placeholder"
    assert Path(source.file_path).read_bytes().startswith(b"PNG 1920x1080")


def test_lookup_disabled_or_empty_label(tmp_path, monkeypatch, fake_placeholder):
    async def _never(*args, **kwargs):
        raise AssertionError("lookup disabled")

    monkeypatch.setattr(media_resolver, "download_poster", _never)
    asyncio.run(resolve_slot(_slot(allow_lookup=False), None, tmp_path, "short"))
    asyncio.run(resolve_slot(_slot(key="scene_1", form_key="media_1", fallback_label="  "), None, tmp_path, "short"))
    assert fake_placeholder == ["The Matrix", "Scene"]


def test_placeholder_rendered_locally_when_service_down(tmp_path, monkeypatch):
    async def _down(*args, **kwargs):
        raise httpx.ConnectError("placeholder service unreachable")

    monkeypatch.setattr(placeholder, "fetch_placeholder", _down)
    source = asyncio.run(resolve_slot(_slot(allow_lookup=False), None, tmp_path, "short"))

    with Image.open(source.file_path) as img:
        assert img.size == (1080, 1920)
        assert img.format == "PNG"


def test_placeholder_failure_raises_media_resolution_error(tmp_path, monkeypatch):
    async def _broken(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(media_resolver, "make_placeholder", _broken)
    with pytest.raises(MediaResolutionError):
        asyncio.run(resolve_slot(_slot(allow_lookup=False), None, tmp_path, "short"))


def test_node_resolves_all_slots_and_lookup_only_for_movies(tmp_path, monkeypatch, fake_placeholder):
    queries: list[str] = []

    async def _poster(query, output_path):
        queries.append(query)
        Path(output_path).write_bytes(b"poster")
        return output_path

    monkeypatch.setattr(media_resolver, "download_poster", _poster)
    state = {
        "request_id": "req1",
        "topic": "Top films",
        "category": "movie",
        "video_type": "short",
        "scenes": [SceneDescriptor(name="Heat"), SceneDescriptor(name="Alien")],
        "uploads": {"media_outro": UploadedMedia(filename="end.png", content=b"png")},
        "work_dir": str(tmp_path),
    }

    update = asyncio.run(resolve_media(state))
    visuals = update["visuals"]

    assert update["stages"] == ["resolving_media"]
    assert set(visuals) == {"intro", "scene_0", "scene_1", "outro"}
    assert visuals["intro"].origin == "placeholder"
    assert visuals["scene_0"].origin == "lookup"
    assert visuals["outro"].origin == "upload"
    assert sorted(queries) == ["Alien", "Heat"]

    queries.clear()
    update = asyncio.run(resolve_media({**state, "category": "product"}))
    assert queries == []
    assert update["visuals"]["scene_0"].origin == "placeholder"


def test_node_leaves_out_unresolvable_slot(tmp_path, monkeypatch):
    async def _make(text, width, height, output_path):
        if text == "Broken":
            raise OSError("no space left")
        Path(output_path).write_bytes(b"png")
        return output_path

    monkeypatch.setattr(media_resolver, "make_placeholder", _make)
    state = {
        "request_id": "req1",
        "topic": "T",
        "category": "",
        "video_type": "short",
        "scenes": [SceneDescriptor(name="Broken"), SceneDescriptor(name="Fine")],
        "uploads": {},
        "work_dir": str(tmp_path),
    }
    update = asyncio.run(resolve_media(state))
    assert set(update["visuals"]) == {"intro", "scene_1", "outro"}


@pytest.mark.parametrize("filename", ["poster." + "x" * 300, "clip.p\x00ng"])
def test_unsaveable_upload_falls_through_to_placeholder(tmp_path, monkeypatch, fake_placeholder, filename):
    async def _miss(query, output_path):
        return None

    monkeypatch.setattr(media_resolver, "download_poster", _miss)
    upload = UploadedMedia(filename=filename, content=b"data")

    source = asyncio.run(resolve_slot(_slot(), upload, tmp_path, "short"))

    assert source.origin == "placeholder"
    assert fake_placeholder == ["The Matrix"]


def test_node_resolves_with_zero_concurrency_setting(tmp_path, monkeypatch, fake_placeholder):
    monkeypatch.setattr(media_resolver.settings, "media_concurrency", 0)
    state = {
        "request_id": "req1",
        "topic": "T",
        "category": "",
        "video_type": "short",
        "scenes": [SceneDescriptor(name="A")],
        "uploads": {},
        "work_dir": str(tmp_path),
    }
    update = asyncio.run(asyncio.wait_for(resolve_media(state), timeout=5))
    assert set(update["visuals"]) == {"intro", "scene_0", "outro"}
