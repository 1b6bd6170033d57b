"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from scene_reel.api.routes import router
from scene_reel.config import get_output_dir, get_videos_dir, settings

logger = structlog.get_logger()

_VIDEOS_DIR = get_videos_dir()


def _get_allowed_origins() -> list[str]:
    return sorted({o.strip() for o in settings.allowed_origins.split(",") if o.strip()})


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure output directories exist for the lifetime of the app."""
    (get_output_dir() / "work").mkdir(parents=True, exist_ok=True)
    logger.info(
        "app.startup",
        output_dir=str(get_output_dir()),
        tts_provider=settings.tts_provider,
        script_model=settings.script_model,
    )
    yield
    logger.info("app.shutdown")


app = FastAPI(
    title="Scene Reel",
    description="Topic + scenes → one narrated video",
    version="0.1.0",
    lifespan=lifespan,
)

_ALLOWED_ORIGINS = _get_allowed_origins()
if _ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)

# Final artifacts are retained and served for later retrieval
_VIDEOS_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/videos", StaticFiles(directory=str(_VIDEOS_DIR)), name="videos")


@app.get("/health")
async def health_check():
    return {"status": "ok"}


def run() -> None:
    """Console entrypoint: serve the app on ``settings.port``."""
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
