"""TMDB poster lookup and plain file download — async helper functions."""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog

from scene_reel.config import settings

logger = structlog.get_logger()


async def download_file(url: str, output_path: str, params: dict | None = None) -> str:
    """Download *url* to *output_path*.

    Raises:
        httpx.HTTPError: On transport failure or non-2xx status.
        RuntimeError: If the response body is empty.
    """
    async with httpx.AsyncClient(timeout=settings.http_timeout_sec, follow_redirects=True) as http:
        resp = await http.get(url, params=params)
        resp.raise_for_status()

    if not resp.content:
        raise RuntimeError(f"Empty download from {url}")

    Path(output_path).write_bytes(resp.content)
    logger.info("download_file.done", url=url, bytes_written=len(resp.content))
    return output_path


async def search_poster_url(query: str) -> str | None:
    """Return the best-match movie poster URL for *query*, or None if nothing matched.

    Raises:
        httpx.HTTPError: On transport failure or non-2xx status.
    """
    if not settings.tmdb_api_key:
        logger.warning("tmdb.skip", reason="TMDB_API_KEY not configured")
        return None

    params = {
        "api_key": settings.tmdb_api_key,
        "query": query,
        "include_adult": "false",
    }
    async with httpx.AsyncClient(timeout=settings.http_timeout_sec) as http:
        resp = await http.get(settings.tmdb_search_url, params=params)
        resp.raise_for_status()

    results = resp.json().get("results") or []
    if not results or not results[0].get("poster_path"):
        logger.info("tmdb.no_match", query=query)
        return None

    return settings.tmdb_image_base_url + results[0]["poster_path"]


async def download_poster(query: str, output_path: str) -> str | None:
    """Look up *query* on TMDB and download the first poster to *output_path*."""
    poster_url = await search_poster_url(query)
    if poster_url is None:
        return None
    return await download_file(poster_url, output_path)
