from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

# Keep import-time directory creation (static mount) out of the working tree.
os.environ.setdefault("OUTPUT_BASE_DIR", tempfile.mkdtemp(prefix="scene-reel-test-"))

import pytest

from scene_reel.config import settings
from scene_reel.nodes import media_resolver, scriptwriter, segment_renderer, stitcher
from scene_reel.tools import speech
from scene_reel.tools.ffmpeg_tools import write_concat_manifest


@pytest.fixture()
def output_dir(tmp_path, monkeypatch) -> Path:
    out = tmp_path / "output"
    monkeypatch.setattr(settings, "output_base_dir", str(out))
    return out


@pytest.fixture()
def fake_tts(monkeypatch):
    """Chunk requester that echoes the chunk; text containing FAIL yields empty audio."""
    requested: list[str] = []

    async def _request(text: str) -> bytes:
        requested.append(text)
        if "FAIL" in text:
            return b""
        return f"<{text}>".encode()

    monkeypatch.setattr(settings, "tts_provider", "openai")
    monkeypatch.setitem(speech._PROVIDERS, "openai", (_request, 4096))
    return requested


@pytest.fixture()
def fake_media_tools(monkeypatch):
    """Replace ffmpeg and audio probing with byte-level fakes.

    A rendered segment is ``SEG[<audio bytes>]`` and the stitched output is the
    concatenation of segment files in manifest order.
    """
    calls: dict[str, list] = {"mux": [], "concat": []}

    def _mux(visual_path, visual_kind, audio_path, output_path, width, height, duration=None):
        calls["mux"].append(
            {
                "visual": visual_path,
                "kind": visual_kind,
                "size": (width, height),
                "duration": duration,
            }
        )
        Path(output_path).write_bytes(b"SEG[" + Path(audio_path).read_bytes() + b"]")
        return output_path

    def _concat(segment_paths, manifest_path, output_path):
        write_concat_manifest(segment_paths, manifest_path)
        calls["concat"].append([Path(p).name for p in segment_paths])
        Path(output_path).write_bytes(b"".join(Path(p).read_bytes() for p in segment_paths))
        return output_path

    monkeypatch.setattr(segment_renderer, "mux_segment", _mux)
    monkeypatch.setattr(segment_renderer, "audio_duration", lambda path: Path(path).stat().st_size / 100)
    monkeypatch.setattr(stitcher, "concat_segments", _concat)
    return calls


@pytest.fixture()
def fake_placeholder(monkeypatch):
    made: list[str] = []

    async def _make(text, width, height, output_path):
        made.append(text)
        Path(output_path).write_bytes(f"PNG {width}x{height} {text}".encode())
        return output_path

    monkeypatch.setattr(media_resolver, "make_placeholder", _make)
    return made


@pytest.fixture()
def script_response(monkeypatch):
    """Set the raw text the script service returns."""
    state = {"raw": "{}", "prompts": []}

    async def _request(prompt: str) -> str:
        state["prompts"].append(prompt)
        return state["raw"]

    monkeypatch.setattr(scriptwriter, "request_script", _request)

    def _set(payload) -> None:
        state["raw"] = payload if isinstance(payload, str) else json.dumps(payload)

    _set.state = state
    return _set
