"""ElevenLabs TTS — async helper for one text chunk."""

from __future__ import annotations

import structlog
from elevenlabs import AsyncElevenLabs, VoiceSettings

from scene_reel.config import settings

logger = structlog.get_logger()

# Documented per-request character limit for eleven_multilingual_v2.
ELEVENLABS_MAX_CHARS = 10000

_VOICE_SETTINGS = VoiceSettings(stability=0.50, similarity_boost=0.75, style=0.00)


async def elevenlabs_tts_chunk(text: str) -> bytes:
    """Synthesize one chunk of narration with ElevenLabs and return raw MP3 bytes.

    Raises:
        elevenlabs.core.ApiError: On non-2xx responses.
        httpx.HTTPError: On transport failure.
    """
    client = AsyncElevenLabs(api_key=settings.elevenlabs_api_key)

    audio_iter = client.text_to_speech.convert(
        voice_id=settings.elevenlabs_voice_id,
        text=text,
        model_id=settings.elevenlabs_model_id,
        output_format="mp3_44100_128",
        voice_settings=_VOICE_SETTINGS,
    )

    chunks: list[bytes] = []
    async for chunk in audio_iter:
        chunks.append(chunk)

    audio_data = b"".join(chunks)
    logger.debug("elevenlabs_tts_chunk.done", text_len=len(text), bytes=len(audio_data))
    return audio_data
