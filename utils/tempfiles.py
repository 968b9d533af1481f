"""
Temporary file management for node executions.
Every item gets its own uniquely-named set of files, removed on all paths.
"""

import tempfile
import uuid
from pathlib import Path
from typing import Dict, Optional

from config import settings
from utils.logging import get_logger

logger = get_logger(__name__)


class TempFileSet:
    """
    Unique temp paths for one item execution.

    Usage:
        with TempFileSet() as files:
            in_path = files.write("in", "mp3", payload)
            out_path = files.path("out", "wav")
            ...
            data = files.read(out_path)
    """

    PREFIX = "ffmpeg"

    def __init__(self, base_dir: Optional[str] = None):
        self.base = Path(base_dir or settings.TEMP_DIR or tempfile.gettempdir())
        self.id = str(uuid.uuid4())
        self._paths: Dict[str, Path] = {}

    def path(self, role: str, ext: str) -> Path:
        """Reserve (and remember) the path for a role, e.g. "in" or "bgm"."""
        path = self.base / f"{self.PREFIX}_{role}_{self.id}.{ext}"
        self._paths[role] = path
        return path

    def write(self, role: str, ext: str, data: bytes) -> Path:
        path = self.path(role, ext)
        path.write_bytes(data)
        return path

    def read(self, path: Path) -> bytes:
        return path.read_bytes()

    @property
    def paths(self) -> Dict[str, Path]:
        return dict(self._paths)

    def cleanup(self) -> None:
        """Delete every reserved path; files that never got written are fine."""
        for path in self._paths.values():
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove temp file {path}: {e}")

    def __enter__(self) -> "TempFileSet":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
