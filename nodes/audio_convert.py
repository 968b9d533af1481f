"""
Audio Convert node: format, bitrate, sample rate, channels and loudness in one pass.
"""

import asyncio
from typing import Optional

from config import settings
from schemas import NodeDescription, NodeItem, NodePropertyOption
from services.ffmpeg import FfmpegError, FfmpegService
from utils.media import extension_from_binary, mime_type_for_extension, replace_extension
from utils.tempfiles import TempFileSet

from .base import BaseNode, NodeExecutionContext
from .options import (
    AUTO_BITRATE_OPTIONS,
    CHANNEL_OPTIONS,
    FORMAT_OPTIONS,
    NORMALIZE_OPTIONS,
    SAMPLE_RATE_OPTIONS,
    validate_bitrate,
    validate_choice,
    validate_sample_rate,
)

p = BaseNode.parameter

KEEP_FORMAT_OPTIONS = [NodePropertyOption(name="Keep Original", value="")] + FORMAT_OPTIONS


class AudioConvertNode(BaseNode):
    """Node converting audio format, bitrate, sample rate and channels."""

    description = NodeDescription(
        display_name="Audio Convert",
        name="audioConvert",
        group=["transform"],
        version=1,
        description="Convert audio format, bitrate, sample rate, and channels",
        defaults={"name": "Audio Convert"},
        properties=[
            p("Binary Property", "binaryPropertyName", "string", "data",
              description="Name of the binary property containing the input audio file"),
            p("Output Format", "outputFormat", "options", "",
              options=KEEP_FORMAT_OPTIONS,
              description="Output audio format (keep original to preserve format)"),
            p("Bitrate", "bitrate", "options", "",
              options=AUTO_BITRATE_OPTIONS,
              description="Audio bitrate"),
            p("Sample Rate", "sampleRate", "options", 0,
              options=SAMPLE_RATE_OPTIONS,
              description="Audio sample rate"),
            p("Channels", "channels", "options", 0,
              options=CHANNEL_OPTIONS,
              description="Number of audio channels"),
            p("Normalize", "normalize", "options", "",
              options=NORMALIZE_OPTIONS,
              description="Audio loudness normalization"),
            p("Output Binary Property", "outputBinaryPropertyName", "string", "data",
              description="Name of the binary property for the output audio file"),
        ],
    )

    def __init__(self, ffmpeg: Optional[FfmpegService] = None):
        self.ffmpeg = ffmpeg or FfmpegService()

    async def execute_item(self, ctx: NodeExecutionContext, i: int) -> NodeItem:
        binary_property = ctx.get_node_parameter("binaryPropertyName", i)
        output_property = ctx.get_node_parameter("outputBinaryPropertyName", i)
        output_format = validate_choice(
            ctx.get_node_parameter("outputFormat", i) or "", KEEP_FORMAT_OPTIONS, "output format"
        )
        bitrate = validate_bitrate(ctx.get_node_parameter("bitrate", i))
        sample_rate = validate_sample_rate(ctx.get_node_parameter("sampleRate", i))
        channels = validate_choice(
            int(ctx.get_node_parameter("channels", i) or 0), CHANNEL_OPTIONS, "channel count"
        )
        normalize = validate_choice(
            ctx.get_node_parameter("normalize", i) or "", NORMALIZE_OPTIONS, "normalization"
        )

        binary_data = ctx.assert_binary_data(i, binary_property)
        input_buffer = ctx.get_binary_data_buffer(i, binary_property)
        input_ext = extension_from_binary(binary_data.file_name, binary_data.mime_type)
        output_ext = output_format or input_ext

        with TempFileSet() as files:
            input_path = files.write("in", input_ext, input_buffer)
            output_path = files.path("out", output_ext)

            cmd = self.ffmpeg.build_audio_convert_command(
                input_path,
                output_path,
                bitrate=bitrate,
                sample_rate=sample_rate,
                channels=channels,
                normalize=normalize,
            )

            try:
                await asyncio.to_thread(self.ffmpeg.run, cmd, settings.FFMPEG_TIMEOUT)
            except FfmpegError as e:
                raise self.operation_error(str(e), i) from e

            output_buffer = self.read_output(files, output_path, i)

        file_name = replace_extension(binary_data.file_name or "audio", output_ext)
        output_binary = ctx.prepare_binary_data(
            output_buffer, file_name, mime_type_for_extension(output_ext)
        )

        return NodeItem(
            json={
                "inputFormat": input_ext,
                "outputFormat": output_ext,
                "bitrate": bitrate or "auto",
                "sampleRate": sample_rate or "auto",
                "channels": channels or "auto",
                "inputSize": len(input_buffer),
                "outputSize": len(output_buffer),
            },
            binary={output_property: output_binary},
        )
