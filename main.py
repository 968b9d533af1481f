"""
HTTP host for the audio nodes.
"""

import shutil

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from routers.nodes import router as nodes_router

app = FastAPI(
    title="Audio Nodes API",
    description="FFmpeg-backed workflow nodes: audio conversion, narration/BGM mixing, URL download",
    version="1.0.0"
)

# CORS configuration
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(nodes_router)


@app.get("/")
def root():
    return {"message": "Audio Nodes API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    ffmpeg_path = shutil.which(settings.FFMPEG_BINARY)
    ffprobe_path = shutil.which(settings.FFPROBE_BINARY)
    return {
        "status": "healthy" if ffmpeg_path and ffprobe_path else "degraded",
        "ffmpeg": ffmpeg_path,
        "ffprobe": ffprobe_path,
    }
