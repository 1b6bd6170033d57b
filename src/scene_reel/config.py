"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # API Keys
    groq_api_key: str = ""
    openai_api_key: str = ""
    elevenlabs_api_key: str = ""
    tmdb_api_key: str = Field(
        default="", validation_alias=AliasChoices("tmdb_api_key", "tmdb_api_token")
    )

    # Script generation (OpenAI-compatible endpoint)
    script_base_url: str = "https://api.groq.com/openai/v1"
    script_model: str = "llama-3.3-70b-versatile"
    script_temperature: float = 0.7

    # Speech synthesis
    tts_provider: str = "openai"  # "openai" | "elevenlabs"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model_id: str = "eleven_multilingual_v2"
    tts_chunk_chars: int = 4000

    # Media lookup / placeholders
    tmdb_search_url: str = "https://api.themoviedb.org/3/search/movie"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p/original"
    placeholder_service_url: str = "https://placehold.co"
    http_timeout_sec: float = 30.0
    lookup_categories: list[str] = ["movie"]

    # Rendering
    short_resolution: str = "1080x1920"
    long_resolution: str = "1920x1080"
    video_fps: int = 30
    video_codec: str = "libx264"
    video_preset: str = "fast"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    audio_sample_rate: int = 44100
    ffmpeg_binary: str = "ffmpeg"
    ffmpeg_timeout_sec: int = 600
    render_concurrency: int = 2
    media_concurrency: int = 4

    # Output
    output_base_dir: str = "./output"
    max_upload_mb: int = 100

    # Server
    allowed_origins: str = ""
    port: int = 8080


settings = Settings()


def get_output_dir() -> Path:
    """Root directory for working files and final artifacts."""
    return Path(settings.output_base_dir).resolve()


def get_videos_dir() -> Path:
    """Directory holding retained final artifacts, served under ``/videos``."""
    return get_output_dir() / "videos"


def resolution_for(video_type: str) -> tuple[int, int]:
    """Return (width, height) for a length-mode: portrait for short, landscape for long."""
    raw = settings.long_resolution if video_type == "long" else settings.short_resolution
    width, height = raw.lower().split("x", 1)
    return int(width), int(height)
