"""
Shared fixtures - fake ffmpeg/ffprobe subprocesses and an isolated temp dir.
"""

import base64
import os
import subprocess
from pathlib import Path

import pytest

import utils.tempfiles


class FakeMediaTools:
    """
    Stand-in for subprocess.run that behaves like ffmpeg/ffprobe.

    ffmpeg calls write `output` to the last argument (the output path);
    ffprobe calls print `duration`. Inputs are captured while they still
    exist on disk so tests can check what was marshalled.
    """

    def __init__(self):
        self.calls = []
        self.inputs = {}
        self.duration = "12.5"
        self.output = b"encoded audio"
        self.returncode = 0
        self.stderr = ""
        self.probe_returncode = 0
        self.probe_stderr = ""
        self.timeout = False
        self.write_output = True

    @property
    def ffmpeg_calls(self):
        return [cmd for cmd in self.calls if not self._is_probe(cmd)]

    @staticmethod
    def _is_probe(cmd):
        return "ffprobe" in os.path.basename(cmd[0])

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))

        if self.timeout:
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

        if self._is_probe(cmd):
            if self.probe_returncode != 0:
                raise subprocess.CalledProcessError(
                    self.probe_returncode, cmd, output="", stderr=self.probe_stderr
                )
            return subprocess.CompletedProcess(cmd, 0, stdout=f"{self.duration}\n", stderr="")

        for index, arg in enumerate(cmd):
            if arg == "-i":
                path = Path(cmd[index + 1])
                self.inputs[str(path)] = path.read_bytes() if path.exists() else None

        if self.returncode != 0:
            return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)

        if self.write_output:
            Path(cmd[-1]).write_bytes(self.output)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def media_tools(monkeypatch):
    """Patch subprocess.run with a fake ffmpeg/ffprobe."""
    fake = FakeMediaTools()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def temp_dir(tmp_path, monkeypatch):
    """Point temp file creation at a per-test directory."""
    monkeypatch.setattr(utils.tempfiles.settings, "TEMP_DIR", str(tmp_path))
    return tmp_path


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def audio_binary(file_name="voice.mp3", data=b"narration bytes", mime_type="audio/mpeg"):
    """Binary property payload as the host sends it."""
    binary = {"data": b64(data), "mimeType": mime_type}
    if file_name is not None:
        binary["fileName"] = file_name
    return binary
