"""
FFmpeg node: convert audio, change bitrate, mix narration with BGM.
"""

import asyncio
from typing import Optional

from config import settings
from schemas import NodeDescription, NodeItem, NodePropertyOption
from services.ffmpeg import FfmpegError, FfmpegService
from services.mixing import MixTimeline
from utils.logging import get_logger
from utils.media import extension_from_binary, mime_type_for_extension, replace_extension
from utils.tempfiles import TempFileSet

from .base import BaseNode, NodeExecutionContext
from .options import (
    AUTO_BITRATE_OPTIONS,
    BITRATE_OPTIONS,
    FORMAT_OPTIONS,
    NORMALIZE_OPTIONS,
    SAMPLE_RATE_OPTIONS,
    validate_bitrate,
    validate_choice,
    validate_sample_rate,
)

logger = get_logger(__name__)

p = BaseNode.parameter

MIX_ONLY = {"show": {"operation": ["mixNarrationBgm"]}}
SECONDS_STEP = {"minValue": 0, "numberStepSize": 0.5}


class FfmpegNode(BaseNode):
    """
    Node for FFmpeg audio operations.

    Operations:
    - convert: re-encode to another format, optionally with bitrate/sample rate
    - changeBitrate: re-encode in the same format at a new bitrate
    - mixNarrationBgm: lay narration over enveloped background music
    """

    description = NodeDescription(
        display_name="FFmpeg",
        name="ffmpeg",
        group=["transform"],
        version=1,
        subtitle='={{$parameter["operation"]}}',
        description="Convert audio files using FFmpeg",
        defaults={"name": "FFmpeg"},
        properties=[
            p("Operation", "operation", "options", "convert", no_data_expression=True, options=[
                NodePropertyOption(name="Convert", value="convert",
                                   description="Convert audio to a different format",
                                   action="Convert audio format"),
                NodePropertyOption(name="Change Bitrate", value="changeBitrate",
                                   description="Change audio bitrate",
                                   action="Change audio bitrate"),
                NodePropertyOption(name="Mix Narration with BGM", value="mixNarrationBgm",
                                   description="Mix narration audio with background music",
                                   action="Mix narration with BGM"),
            ]),
            p("Binary Property", "binaryPropertyName", "string", "data",
              description="Name of the binary property containing the input audio file"),
            p("Output Format", "outputFormat", "options", "mp3",
              options=FORMAT_OPTIONS,
              description="Output audio format",
              display_options={"show": {"operation": ["convert"]}}),
            p("Bitrate", "bitrate", "options", "128k",
              options=BITRATE_OPTIONS,
              description="Audio bitrate",
              display_options={"show": {"operation": ["changeBitrate"]}}),
            p("Options", "options", "collection", {},
              placeholder="Add Option",
              display_options={"show": {"operation": ["convert"]}},
              options=[
                  p("Bitrate", "bitrate", "options", "",
                    options=AUTO_BITRATE_OPTIONS,
                    description="Audio bitrate (leave empty for auto)"),
                  p("Sample Rate", "sampleRate", "options", 0,
                    options=SAMPLE_RATE_OPTIONS,
                    description="Audio sample rate (leave auto to keep original)"),
              ]),
            p("BGM Binary Property", "bgmBinaryPropertyName", "string", "bgm",
              description="Name of the binary property containing the BGM audio file",
              display_options=MIX_ONLY),
            p("Fade In Duration (seconds)", "fadeInSeconds", "number", 2,
              type_options=SECONDS_STEP,
              description="Duration for BGM to fade in from silence to full volume",
              display_options=MIX_ONLY),
            p("Intro Duration (seconds)", "introSeconds", "number", 3,
              type_options=SECONDS_STEP,
              description="Duration of BGM at full volume (after fade in, before fade down)",
              display_options=MIX_ONLY),
            p("Fade Down Duration (seconds)", "fadeDownSeconds", "number", 2,
              type_options=SECONDS_STEP,
              description="Duration for BGM to fade from full volume to BGM volume",
              display_options=MIX_ONLY),
            p("BGM Volume", "bgmVolume", "number", 0.15,
              type_options={"minValue": 0, "maxValue": 1, "numberStepSize": 0.05},
              description="BGM volume during narration (0.0 to 1.0)",
              display_options=MIX_ONLY),
            p("Fade Out Duration (seconds)", "fadeOutSeconds", "number", 3,
              type_options=SECONDS_STEP,
              description="Duration for BGM to fade out to silence after narration ends",
              display_options=MIX_ONLY),
            p("Mix Output Format", "mixOutputFormat", "options", "mp3",
              options=FORMAT_OPTIONS,
              description="Output audio format",
              display_options=MIX_ONLY),
            p("Mix Output Bitrate", "mixBitrate", "options", "",
              options=AUTO_BITRATE_OPTIONS,
              description="Output audio bitrate (leave auto for default)",
              display_options=MIX_ONLY),
            p("Normalize", "mixNormalize", "options", "",
              options=NORMALIZE_OPTIONS,
              description="Audio loudness normalization on the mixed output",
              display_options=MIX_ONLY),
            p("Output Binary Property", "outputBinaryPropertyName", "string", "data",
              description="Name of the binary property for the output audio file"),
        ],
    )

    def __init__(self, ffmpeg: Optional[FfmpegService] = None):
        self.ffmpeg = ffmpeg or FfmpegService()

    async def execute_item(self, ctx: NodeExecutionContext, i: int) -> NodeItem:
        operation = ctx.get_node_parameter("operation", i)
        binary_property = ctx.get_node_parameter("binaryPropertyName", i)
        output_property = ctx.get_node_parameter("outputBinaryPropertyName", i)

        if operation == "mixNarrationBgm":
            return await self._mix_narration_bgm(ctx, i, binary_property, output_property)
        if operation in ("convert", "changeBitrate"):
            return await self._transcode(ctx, i, operation, binary_property, output_property)

        raise self.operation_error(f'The operation "{operation}" is not supported', i)

    async def _transcode(
        self,
        ctx: NodeExecutionContext,
        i: int,
        operation: str,
        binary_property: str,
        output_property: str,
    ) -> NodeItem:
        binary_data = ctx.assert_binary_data(i, binary_property)
        input_buffer = ctx.get_binary_data_buffer(i, binary_property)
        input_ext = extension_from_binary(binary_data.file_name, binary_data.mime_type)

        if operation == "convert":
            output_ext = validate_choice(
                ctx.get_node_parameter("outputFormat", i), FORMAT_OPTIONS, "output format"
            )
        else:
            # changeBitrate keeps the container/codec of the input
            output_ext = input_ext

        with TempFileSet() as files:
            input_path = files.write("in", input_ext, input_buffer)
            output_path = files.path("out", output_ext)

            if operation == "convert":
                options = ctx.get_node_parameter("options", i, {}) or {}
                cmd = self.ffmpeg.build_convert_command(
                    input_path,
                    output_path,
                    bitrate=validate_bitrate(options.get("bitrate", "")),
                    sample_rate=validate_sample_rate(options.get("sampleRate")),
                )
            else:
                cmd = self.ffmpeg.build_change_bitrate_command(
                    input_path,
                    output_path,
                    bitrate=validate_bitrate(ctx.get_node_parameter("bitrate", i)),
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
                "operation": operation,
                "inputFormat": input_ext,
                "outputFormat": output_ext,
                "inputSize": len(input_buffer),
                "outputSize": len(output_buffer),
            },
            binary={output_property: output_binary},
        )

    async def _mix_narration_bgm(
        self,
        ctx: NodeExecutionContext,
        i: int,
        binary_property: str,
        output_property: str,
    ) -> NodeItem:
        bgm_property = ctx.get_node_parameter("bgmBinaryPropertyName", i)
        fade_in = float(ctx.get_node_parameter("fadeInSeconds", i))
        intro = float(ctx.get_node_parameter("introSeconds", i))
        fade_down = float(ctx.get_node_parameter("fadeDownSeconds", i))
        bgm_volume = float(ctx.get_node_parameter("bgmVolume", i))
        fade_out = float(ctx.get_node_parameter("fadeOutSeconds", i))
        output_ext = validate_choice(
            ctx.get_node_parameter("mixOutputFormat", i), FORMAT_OPTIONS, "output format"
        )
        bitrate = validate_bitrate(ctx.get_node_parameter("mixBitrate", i))
        normalize = validate_choice(
            ctx.get_node_parameter("mixNormalize", i), NORMALIZE_OPTIONS, "normalization"
        )
        # Narration length is filled in after the probe
        envelope = MixTimeline(
            narration_duration=0,
            fade_in=fade_in,
            intro=intro,
            fade_down=fade_down,
            fade_out=fade_out,
            bgm_volume=bgm_volume,
        )

        nar_binary = ctx.assert_binary_data(i, binary_property)
        nar_buffer = ctx.get_binary_data_buffer(i, binary_property)
        nar_ext = extension_from_binary(nar_binary.file_name, nar_binary.mime_type)

        bgm_binary = ctx.assert_binary_data(i, bgm_property)
        bgm_buffer = ctx.get_binary_data_buffer(i, bgm_property)
        bgm_ext = extension_from_binary(bgm_binary.file_name, bgm_binary.mime_type)

        with TempFileSet() as files:
            nar_path = files.write("nar", nar_ext, nar_buffer)
            bgm_path = files.write("bgm", bgm_ext, bgm_buffer)
            output_path = files.path("out", output_ext)

            try:
                nar_duration = await asyncio.to_thread(self.ffmpeg.probe_duration, nar_path)
            except FfmpegError as e:
                raise self.operation_error(str(e), i) from e

            timeline = envelope.model_copy(update={"narration_duration": nar_duration})
            logger.info(
                f"Mixing narration ({nar_duration:.2f}s) with BGM: delay "
                f"{timeline.narration_delay:.2f}s, total {timeline.total_duration:.2f}s"
            )

            cmd = self.ffmpeg.build_mix_command(
                nar_path, bgm_path, output_path, timeline,
                bitrate=bitrate,
                normalize=normalize,
            )

            try:
                await asyncio.to_thread(self.ffmpeg.run, cmd, settings.MIX_TIMEOUT)
            except FfmpegError as e:
                raise self.operation_error(str(e), i) from e

            output_buffer = self.read_output(files, output_path, i)

        file_name = replace_extension(nar_binary.file_name or "mixed_audio", output_ext)
        output_binary = ctx.prepare_binary_data(
            output_buffer, file_name, mime_type_for_extension(output_ext)
        )

        return NodeItem(
            json={
                "operation": "mixNarrationBgm",
                "narrationDuration": nar_duration,
                "fadeInSeconds": fade_in,
                "introSeconds": intro,
                "fadeDownSeconds": fade_down,
                "bgmVolume": bgm_volume,
                "fadeOutSeconds": fade_out,
                "narrationDelay": timeline.narration_delay,
                "totalDuration": timeline.total_duration,
                "outputFormat": output_ext,
                "outputSize": len(output_buffer),
            },
            binary={output_property: output_binary},
        )
