"""Per-request working directory with guaranteed cleanup."""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

import structlog

from scene_reel.config import get_output_dir

logger = structlog.get_logger()


def new_request_id() -> str:
    return uuid.uuid4().hex


class RequestWorkspace:
    """Working directory scoped to one pipeline request.

    Every intermediate file (uploads, placeholders, audio, segment clips,
    concat manifest) lives under ``<output>/work/<request_id>/``. The tree is
    removed on exit whether the request succeeded, failed or was cancelled.
    """

    def __init__(self, request_id: str, root: Path | None = None) -> None:
        self.request_id = request_id
        base = root if root is not None else get_output_dir() / "work"
        self.path = base / request_id

    def __enter__(self) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        logger.info("workspace.created", request_id=self.request_id, path=str(self.path))
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        shutil.rmtree(self.path, ignore_errors=True)
        logger.info(
            "workspace.removed",
            request_id=self.request_id,
            failed=exc_type is not None,
        )
