"""Placeholder images — remote placeholder service with a local Pillow fallback."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from PIL import Image, ImageDraw, ImageFont

from scene_reel.config import settings
from scene_reel.tools.tmdb import download_file

logger = structlog.get_logger()

_BACKGROUND = "#111111"
_FOREGROUND = "#FFFFFF"
_FONT_CANDIDATES = (
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "Arial.ttf",
)


async def fetch_placeholder(text: str, width: int, height: int, output_path: str) -> str:
    """Download a ``width``x``height`` PNG with *text* from the placeholder service."""
    url = f"{settings.placeholder_service_url.rstrip('/')}/{width}x{height}/111/FFF/png"
    return await download_file(url, output_path, params={"text": text})


def _load_font(size: int) -> ImageFont.ImageFont:
    for candidate in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default()


def render_placeholder(text: str, width: int, height: int, output_path: str) -> str:
    """Draw *text* centred on a dark ``width``x``height`` canvas and save it as PNG."""
    img = Image.new("RGB", (width, height), color=_BACKGROUND)
    draw = ImageDraw.Draw(img)
    font = _load_font(max(24, min(width, height) // 14))

    bbox = draw.multiline_textbbox((0, 0), text, font=font, align="center")
    text_width = bbox[2] - bbox[0]
    text_height = bbox[3] - bbox[1]
    position = ((width - text_width) // 2, (height - text_height) // 2)
    draw.multiline_text(position, text, fill=_FOREGROUND, font=font, align="center")

    img.save(output_path, format="PNG")
    logger.info("placeholder.rendered", output_path=output_path, size=f"{width}x{height}")
    return output_path


async def make_placeholder(text: str, width: int, height: int, output_path: str) -> str:
    """Produce a placeholder image, preferring the remote service.

    Falls back to local rendering when the service is unreachable, so the
    result never depends on the network.
    """
    try:
        return await fetch_placeholder(text, width, height, output_path)
    except Exception:
        logger.warning("placeholder.service_failed", text=text, exc_info=True)

    Path(output_path).unlink(missing_ok=True)
    return await asyncio.to_thread(render_placeholder, text, width, height, output_path)
