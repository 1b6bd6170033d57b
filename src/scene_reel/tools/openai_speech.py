"""OpenAI speech endpoint — async helper for one text chunk."""

from __future__ import annotations

import structlog
from openai import AsyncOpenAI

from scene_reel.config import settings

logger = structlog.get_logger()

# Documented per-request input limit for /v1/audio/speech.
OPENAI_TTS_MAX_CHARS = 4096


async def openai_tts_chunk(text: str) -> bytes:
    """Synthesize one chunk of narration with OpenAI TTS and return raw MP3 bytes.

    Raises:
        openai.OpenAIError: On transport failure or non-2xx responses.
    """
    client = AsyncOpenAI(api_key=settings.openai_api_key)

    response = await client.audio.speech.create(
        model=settings.tts_model,
        voice=settings.tts_voice,
        input=text,
        response_format="mp3",
    )

    audio_data = response.content
    logger.debug("openai_tts_chunk.done", text_len=len(text), bytes=len(audio_data))
    return audio_data
