"""
FFmpeg service: command building, subprocess execution and probing.
Everything the nodes hand to the ffmpeg/ffprobe executables goes through here.
"""

import math
import subprocess
from pathlib import Path
from typing import Optional, List

from config import settings
from .mixing import MixTimeline
from utils.logging import format_command, get_logger

logger = get_logger(__name__)

# ffmpeg prints its banner first and the actual error last
MAX_ERROR_CHARS = 2000


class FfmpegError(RuntimeError):
    """An ffmpeg/ffprobe invocation failed."""

    def __init__(self, message: str, stderr: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class ProbeError(FfmpegError):
    """ffprobe failed or did not report a usable duration."""
    pass


def _tail(text: str) -> str:
    text = text.strip()
    if len(text) > MAX_ERROR_CHARS:
        return "..." + text[-MAX_ERROR_CHARS:]
    return text


class FfmpegService:
    """
    Service for running ffmpeg/ffprobe as subprocesses.

    Commands are argument lists (never a shell string) so file names with
    spaces or quotes need no escaping.
    """

    def __init__(
        self,
        ffmpeg_binary: Optional[str] = None,
        ffprobe_binary: Optional[str] = None,
    ):
        self.ffmpeg_binary = ffmpeg_binary or settings.FFMPEG_BINARY
        self.ffprobe_binary = ffprobe_binary or settings.FFPROBE_BINARY

    # ==================== COMMAND BUILDERS ====================

    def build_audio_convert_command(
        self,
        input_path: Path,
        output_path: Path,
        bitrate: str = "",
        sample_rate: int = 0,
        channels: int = 0,
        normalize: str = "",
    ) -> List[str]:
        """
        Build FFmpeg command for a format/bitrate/rate/channel conversion.

        Falsy options are left out so ffmpeg keeps the input's value.
        The output format follows from the output file extension.

        Args:
            input_path: Source file
            output_path: Destination file
            bitrate: Audio bitrate such as "128k"
            sample_rate: Sample rate in Hz
            channels: 1 (mono) or 2 (stereo)
            normalize: Audio filter to apply, e.g. "loudnorm"

        Returns:
            FFmpeg command as list
        """
        cmd = [self.ffmpeg_binary, "-i", str(input_path)]

        if bitrate:
            cmd.extend(["-b:a", bitrate])
        if sample_rate:
            cmd.extend(["-ar", str(sample_rate)])
        if channels:
            cmd.extend(["-ac", str(channels)])
        if normalize:
            cmd.extend(["-af", normalize])

        cmd.extend(["-y", str(output_path)])
        return cmd

    def build_convert_command(
        self,
        input_path: Path,
        output_path: Path,
        bitrate: str = "",
        sample_rate: int = 0,
    ) -> List[str]:
        """Build FFmpeg command for a plain format conversion."""
        return self.build_audio_convert_command(
            input_path, output_path, bitrate=bitrate, sample_rate=sample_rate
        )

    def build_change_bitrate_command(
        self,
        input_path: Path,
        output_path: Path,
        bitrate: str,
    ) -> List[str]:
        """Build FFmpeg command that only re-encodes at a new bitrate."""
        return [
            self.ffmpeg_binary,
            "-i", str(input_path),
            "-b:a", bitrate,
            "-y", str(output_path),
        ]

    def build_mix_command(
        self,
        narration_path: Path,
        bgm_path: Path,
        output_path: Path,
        timeline: MixTimeline,
        bitrate: str = "",
        normalize: str = "",
    ) -> List[str]:
        """
        Build FFmpeg command mixing narration over background music.

        The BGM input is looped indefinitely and trimmed to the timeline's
        total duration inside the filter graph, so short music beds still
        cover the whole narration.

        Args:
            narration_path: Narration audio (input 0)
            bgm_path: Background music (input 1)
            output_path: Destination file
            timeline: Envelope timing
            bitrate: Optional output bitrate
            normalize: Optional filter appended after the mix

        Returns:
            FFmpeg command as list
        """
        cmd = [
            self.ffmpeg_binary,
            "-i", str(narration_path),  # [0] Narration
            "-stream_loop", "-1",
            "-i", str(bgm_path),  # [1] Background music
            "-filter_complex", timeline.filter_graph(normalize),
            "-map", "[out]",
        ]

        if bitrate:
            cmd.extend(["-b:a", bitrate])

        cmd.extend(["-y", str(output_path)])
        return cmd

    # ==================== EXECUTION ====================

    def run(self, cmd: List[str], timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        """
        Run an ffmpeg command.

        Args:
            cmd: Command as list
            timeout: Seconds before the process is killed (FFMPEG_TIMEOUT by default)

        Returns:
            Completed process

        Raises:
            FfmpegError: On non-zero exit, timeout or a missing executable
        """
        timeout = timeout or settings.FFMPEG_TIMEOUT
        logger.info(f"Running FFmpeg: {format_command(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            logger.error(f"FFmpeg timed out after {timeout} seconds")
            raise FfmpegError(f"FFmpeg failed: timed out after {timeout} seconds")
        except OSError as e:
            logger.error(f"FFmpeg could not be started: {e}")
            raise FfmpegError(f"FFmpeg failed: {e}")

        if result.returncode != 0:
            stderr = result.stderr or ""
            logger.error(f"FFmpeg failed: {_tail(stderr)}")
            detail = _tail(stderr) or f"exit code {result.returncode}"
            raise FfmpegError(
                f"FFmpeg failed: {detail}",
                stderr=stderr,
                returncode=result.returncode,
            )

        return result

    def probe_duration(self, media_path: Path, timeout: Optional[int] = None) -> float:
        """
        Get media duration using ffprobe.

        Args:
            media_path: Path to audio/video file
            timeout: Seconds before ffprobe is killed (PROBE_TIMEOUT by default)

        Returns:
            Duration in seconds

        Raises:
            ProbeError: If ffprobe fails or reports no duration
        """
        media_path = Path(media_path)
        timeout = timeout or settings.PROBE_TIMEOUT
        cmd = [
            self.ffprobe_binary,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(media_path)
        ]
        logger.debug(f"Running ffprobe: {format_command(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=timeout
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"ffprobe failed: {e.stderr}")
            raise ProbeError(
                f"ffprobe failed: {_tail(e.stderr or '') or e}",
                stderr=e.stderr or "",
                returncode=e.returncode,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"ffprobe timed out after {timeout} seconds")
            raise ProbeError(f"ffprobe failed: timed out after {timeout} seconds")
        except OSError as e:
            logger.error(f"ffprobe could not be started: {e}")
            raise ProbeError(f"ffprobe failed: {e}")

        raw = result.stdout.strip()
        try:
            duration = float(raw)
        except ValueError:
            logger.error(f"Failed to parse duration: {raw!r}")
            raise ProbeError(f"ffprobe failed: no duration reported for {media_path.name} ({raw!r})")

        if not math.isfinite(duration) or duration < 0:
            raise ProbeError(f"ffprobe failed: invalid duration {raw!r} for {media_path.name}")

        return duration
