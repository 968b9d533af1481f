"""Service layer for the audio nodes."""

from .base import BaseService
from .ffmpeg import FfmpegService, FfmpegError, ProbeError
from .mixing import MixTimeline
from .downloader import DownloadService, DownloadResult

__all__ = [
    "BaseService",
    "FfmpegService",
    "FfmpegError",
    "ProbeError",
    "MixTimeline",
    "DownloadService",
    "DownloadResult",
]
