"""ffmpeg invocations — per-segment loop+mux and stream-copy concatenation."""

from __future__ import annotations

import subprocess
from pathlib import Path

import structlog

from scene_reel.config import settings

logger = structlog.get_logger()

_STDERR_TAIL = 500


class FFmpegError(RuntimeError):
    """ffmpeg exited non-zero, timed out, or could not be started."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def scale_pad_filter(width: int, height: int) -> str:
    """Fit inside ``width``x``height`` keeping aspect ratio, then pad to centre. Never crops."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1,format=yuv420p"
    )


def encode_profile() -> list[str]:
    """Codec arguments shared by every segment so they can be concatenated by stream copy."""
    return [
        "-c:v", settings.video_codec,
        "-preset", settings.video_preset,
        "-pix_fmt", "yuv420p",
        "-r", str(settings.video_fps),
        "-c:a", settings.audio_codec,
        "-b:a", settings.audio_bitrate,
        "-ar", str(settings.audio_sample_rate),
        "-ac", "2",
    ]


def build_mux_command(
    visual_path: str,
    visual_kind: str,
    audio_path: str,
    output_path: str,
    width: int,
    height: int,
    duration: float | None = None,
) -> list[str]:
    """Build the ffmpeg command that loops one visual under one narration track."""
    if visual_kind == "video":
        visual_input = ["-stream_loop", "-1", "-i", visual_path]
    else:
        visual_input = ["-loop", "1", "-framerate", str(settings.video_fps), "-i", visual_path]

    cmd = [
        settings.ffmpeg_binary, "-y", "-hide_banner",
        *visual_input,
        "-i", audio_path,
        "-map", "0:v:0", "-map", "1:a:0",
        "-vf", scale_pad_filter(width, height),
        *encode_profile(),
        "-shortest",
    ]
    if duration:
        cmd += ["-t", f"{duration:.3f}"]
    cmd += ["-movflags", "+faststart", output_path]
    return cmd


def build_concat_command(manifest_path: str, output_path: str) -> list[str]:
    return [
        settings.ffmpeg_binary, "-y", "-hide_banner",
        "-f", "concat", "-safe", "0",
        "-i", manifest_path,
        "-c", "copy",
        output_path,
    ]


def write_concat_manifest(segment_paths: list[str], manifest_path: str) -> str:
    """Write an ffmpeg concat-demuxer list with one absolute path per line, in order."""
    lines = []
    for seg in segment_paths:
        escaped = str(Path(seg).resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    Path(manifest_path).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest_path


def run_ffmpeg(cmd: list[str]) -> None:
    """Run an ffmpeg command to completion.

    Raises:
        FFmpegError: With the tail of stderr when the exit status is non-zero.
    """
    logger.debug("ffmpeg.run", cmd=" ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            timeout=settings.ffmpeg_timeout_sec,
        )
    except FileNotFoundError as exc:
        raise FFmpegError(f"ffmpeg binary not found: {cmd[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise FFmpegError(f"ffmpeg timed out after {settings.ffmpeg_timeout_sec}s") from exc

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")[-_STDERR_TAIL:]
        logger.warning("ffmpeg.failed", returncode=result.returncode, stderr=stderr)
        raise FFmpegError(
            f"ffmpeg exited with status {result.returncode}",
            returncode=result.returncode,
            stderr=stderr,
        )


def mux_segment(
    visual_path: str,
    visual_kind: str,
    audio_path: str,
    output_path: str,
    width: int,
    height: int,
    duration: float | None = None,
) -> str:
    run_ffmpeg(
        build_mux_command(visual_path, visual_kind, audio_path, output_path, width, height, duration)
    )
    return output_path


def concat_segments(segment_paths: list[str], manifest_path: str, output_path: str) -> str:
    write_concat_manifest(segment_paths, manifest_path)
    run_ffmpeg(build_concat_command(manifest_path, output_path))
    return output_path
