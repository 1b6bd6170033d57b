from __future__ import annotations

from pathlib import Path

import pytest

from scene_reel.errors import ConcatenationError, NoSegmentsError
from scene_reel.models.media import RenderedSegment
from scene_reel.nodes import stitcher
from scene_reel.nodes.stitcher import stitch
from scene_reel.tools.ffmpeg_tools import FFmpegError


def _segment(tmp_path: Path, key: str, index: int) -> RenderedSegment:
    path = tmp_path / f"seg_{key}.mp4"
    path.write_bytes(key.encode() + b";")
    return RenderedSegment(slot_key=key, slot_index=index, file_path=str(path))


def test_no_segments(tmp_path):
    final = tmp_path / "videos" / "out.mp4"
    with pytest.raises(NoSegmentsError):
        stitch([], tmp_path, final)
    assert not final.exists()


def test_order_follows_slot_index(tmp_path, fake_media_tools):
    segments = [
        _segment(tmp_path, "outro", 4),
        _segment(tmp_path, "scene_1", 2),
        _segment(tmp_path, "intro", 0),
    ]
    final = tmp_path / "videos" / "out.mp4"

    stitch(segments, tmp_path, final)

    assert final.read_bytes() == b"intro;scene_1;outro;"
    manifest = (tmp_path / "concat.txt").read_text(encoding="utf-8").splitlines()
    assert [Path(line[6:-1]).name for line in manifest] == [
        "seg_intro.mp4",
        "seg_scene_1.mp4",
        "seg_outro.mp4",
    ]


def test_stale_artifact_overwritten(tmp_path, fake_media_tools):
    final = tmp_path / "videos" / "out.mp4"
    final.parent.mkdir(parents=True)
    final.write_bytes(b"stale")

    stitch([_segment(tmp_path, "intro", 0)], tmp_path, final)
    assert final.read_bytes() == b"intro;"
    assert not (tmp_path / "stitched.mp4").exists()


def test_concat_failure_keeps_previous_artifact(tmp_path, monkeypatch):
    def _concat(segment_paths, manifest_path, output_path):
        Path(output_path).write_bytes(b"half")
        raise FFmpegError("ffmpeg exited with status 1", returncode=1, stderr="codec mismatch")

    monkeypatch.setattr(stitcher, "concat_segments", _concat)
    final = tmp_path / "videos" / "out.mp4"
    final.parent.mkdir(parents=True)
    final.write_bytes(b"previous")

    with pytest.raises(ConcatenationError) as excinfo:
        stitch([_segment(tmp_path, "intro", 0)], tmp_path, final)

    assert excinfo.value.stderr == "codec mismatch"
    assert final.read_bytes() == b"previous"
    assert not (tmp_path / "stitched.mp4").exists()
