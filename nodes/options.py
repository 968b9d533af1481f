"""Option lists shared by the audio node descriptions."""

import re

from schemas import NodePropertyOption

FORMAT_OPTIONS = [
    NodePropertyOption(name="MP3", value="mp3"),
    NodePropertyOption(name="WAV", value="wav"),
    NodePropertyOption(name="OGG", value="ogg"),
    NodePropertyOption(name="FLAC", value="flac"),
    NodePropertyOption(name="AAC", value="aac"),
    NodePropertyOption(name="M4A", value="m4a"),
]

BITRATE_OPTIONS = [
    NodePropertyOption(name="64 kbps", value="64k"),
    NodePropertyOption(name="128 kbps", value="128k"),
    NodePropertyOption(name="192 kbps", value="192k"),
    NodePropertyOption(name="256 kbps", value="256k"),
    NodePropertyOption(name="320 kbps", value="320k"),
]

AUTO_BITRATE_OPTIONS = [NodePropertyOption(name="Auto", value="")] + BITRATE_OPTIONS

SAMPLE_RATE_OPTIONS = [
    NodePropertyOption(name="Auto", value=0),
    NodePropertyOption(name="22050 Hz", value=22050),
    NodePropertyOption(name="44100 Hz", value=44100),
    NodePropertyOption(name="48000 Hz", value=48000),
]

CHANNEL_OPTIONS = [
    NodePropertyOption(name="Auto", value=0),
    NodePropertyOption(name="Mono", value=1),
    NodePropertyOption(name="Stereo", value=2),
]

NORMALIZE_OPTIONS = [
    NodePropertyOption(name="Off", value=""),
    NodePropertyOption(name="EBU R128 Loudness", value="loudnorm"),
]


def allowed_values(options) -> list:
    return [option.value for option in options]


BITRATE_PATTERN = re.compile(r"^\d+[kKmM]?$")


def validate_choice(value, options, label: str):
    """Reject values the description does not offer (they end up in argv)."""
    if value not in allowed_values(options):
        raise ValueError(f"Unsupported {label}: {value!r}")
    return value


def validate_bitrate(value: str) -> str:
    if value and not BITRATE_PATTERN.match(str(value)):
        raise ValueError(f"Unsupported bitrate: {value!r}")
    return str(value or "")


def validate_sample_rate(value) -> int:
    sample_rate = int(value or 0)
    if sample_rate < 0:
        raise ValueError(f"Unsupported sample rate: {value!r}")
    return sample_rate
