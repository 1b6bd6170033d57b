"""Response schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class GenerateResponse(BaseModel):
    status: str = "success"
    video_url: str
    segments: int
    skipped: list[str] = []


class ErrorResponse(BaseModel):
    status: str = "failed"
    error: str
    detail: str
    raw_response: Optional[str] = None
