"""
Narration/BGM mixing timeline.

Lays out the background track around the narration:

    fade in -> intro (full volume) -> fade down -> narration at bgm volume -> fade out

and renders the matching ffmpeg volume envelope and filter graph.
"""

import math
from pydantic import BaseModel, Field


def format_number(value: float) -> str:
    """Render seconds/gains for ffmpeg expressions without float noise."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


class MixTimeline(BaseModel):
    """
    Timeline for mixing narration over background music.

    All durations are in seconds. Negative durations or a volume outside
    [0, 1] fail validation (pydantic ValidationError is a ValueError).
    """
    narration_duration: float = Field(ge=0)
    fade_in: float = Field(default=2.0, ge=0)
    intro: float = Field(default=3.0, ge=0)
    fade_down: float = Field(default=2.0, ge=0)
    fade_out: float = Field(default=3.0, ge=0)
    bgm_volume: float = Field(default=0.15, ge=0, le=1)

    @property
    def fade_in_end(self) -> float:
        return self.fade_in

    @property
    def intro_end(self) -> float:
        return self.fade_in_end + self.intro

    @property
    def fade_down_end(self) -> float:
        return self.intro_end + self.fade_down

    @property
    def narration_delay(self) -> float:
        """Narration starts once the background has settled at bgm_volume."""
        return self.fade_down_end

    @property
    def narration_end(self) -> float:
        return self.narration_delay + self.narration_duration

    @property
    def total_duration(self) -> float:
        return self.narration_end + self.fade_out

    @property
    def delay_ms(self) -> int:
        # Round half up, adelay takes whole milliseconds
        return int(math.floor(self.narration_delay * 1000 + 0.5))

    def gain_at(self, t: float) -> float:
        """
        Background gain at playback time t.

        Mirrors volume_expression() segment for segment, so the envelope can
        be checked without running ffmpeg.
        """
        v = self.bgm_volume
        if self.fade_in > 0 and t < self.fade_in_end:
            return t / self.fade_in
        if t < self.intro_end:
            return 1.0
        if self.fade_down > 0 and t < self.fade_down_end:
            return 1.0 - (1.0 - v) * (t - self.intro_end) / self.fade_down
        if t < self.narration_end:
            return v
        if self.fade_out > 0 and t < self.total_duration:
            return v * (1 - (t - self.narration_end) / self.fade_out)
        return 0.0

    def volume_expression(self) -> str:
        """
        Piecewise volume envelope as a nested ffmpeg if() expression.

        Built inside-out from the last segment; zero-length ramps are left
        out entirely so the transition is immediate.
        """
        fmt = format_number
        v = fmt(self.bgm_volume)

        expr = "0"
        if self.fade_out > 0:
            expr = (
                f"if(lt(t,{fmt(self.total_duration)}),"
                f"{v}*(1-(t-{fmt(self.narration_end)})/{fmt(self.fade_out)}),{expr})"
            )
        expr = f"if(lt(t,{fmt(self.narration_end)}),{v},{expr})"
        if self.fade_down > 0:
            expr = (
                f"if(lt(t,{fmt(self.fade_down_end)}),"
                f"1.0-(1.0-{v})*(t-{fmt(self.intro_end)})/{fmt(self.fade_down)},{expr})"
            )
        expr = f"if(lt(t,{fmt(self.intro_end)}),1.0,{expr})"
        if self.fade_in > 0:
            expr = f"if(lt(t,{fmt(self.fade_in_end)}),t/{fmt(self.fade_in)},{expr})"

        return expr

    def filter_graph(self, normalize: str = "") -> str:
        """
        filter_complex for input 0 = narration, input 1 = looped BGM.

        Narration is delayed and summed with the enveloped, trimmed BGM;
        amix normalization stays off so neither track is attenuated.
        """
        mix = "[nar][bgm]amix=inputs=2:duration=longest:normalize=0"
        if normalize:
            mix += f",{normalize}"

        return (
            f"[0:a]adelay={self.delay_ms}:all=1[nar];"
            f"[1:a]atrim=0:{format_number(self.total_duration)},asetpts=PTS-STARTPTS,"
            f"volume='{self.volume_expression()}':eval=frame[bgm];"
            f"{mix}[out]"
        )
