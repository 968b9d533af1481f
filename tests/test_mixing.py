"""
Tests for the narration/BGM timeline - pure arithmetic, no FFmpeg calls.
"""

import pytest
from services.mixing import MixTimeline, format_number


EXPECTED_EXPR = (
    "if(lt(t,2),t/2,"
    "if(lt(t,5),1.0,"
    "if(lt(t,7),1.0-(1.0-0.15)*(t-5)/2,"
    "if(lt(t,17),0.15,"
    "if(lt(t,20),0.15*(1-(t-17)/3),0)))))"
)


@pytest.fixture
def timeline():
    """Default envelope around a 10 second narration."""
    return MixTimeline(narration_duration=10)


class TestTimelineArithmetic:
    """Test the segment boundaries."""

    def test_defaults(self, timeline):
        """Test default envelope inputs."""
        assert timeline.fade_in == 2.0
        assert timeline.intro == 3.0
        assert timeline.fade_down == 2.0
        assert timeline.fade_out == 3.0
        assert timeline.bgm_volume == 0.15

    def test_boundaries(self, timeline):
        """Test cumulative segment ends."""
        assert timeline.fade_in_end == 2
        assert timeline.intro_end == 5
        assert timeline.fade_down_end == 7
        assert timeline.narration_delay == 7
        assert timeline.narration_end == 17
        assert timeline.total_duration == 20

    def test_delay_ms(self, timeline):
        """Test narration delay in whole milliseconds."""
        assert timeline.delay_ms == 7000

    def test_delay_ms_rounds_half_up(self):
        """Test that half milliseconds round up."""
        timeline = MixTimeline(narration_duration=1, fade_in=0.0625, intro=0, fade_down=0)
        assert timeline.delay_ms == 63

    def test_negative_duration_rejected(self):
        """Test negative durations raise ValueError."""
        with pytest.raises(ValueError):
            MixTimeline(narration_duration=10, fade_in=-1)

    def test_volume_out_of_range_rejected(self):
        """Test volume above 1.0 raises ValueError."""
        with pytest.raises(ValueError):
            MixTimeline(narration_duration=10, bgm_volume=1.5)


class TestGainEnvelope:
    """Test gain_at across the five segments."""

    @pytest.mark.parametrize("t,expected", [
        (0.0, 0.0),
        (1.0, 0.5),
        (2.0, 1.0),
        (4.9, 1.0),
        (6.0, 0.575),
        (7.0, 0.15),
        (12.0, 0.15),
        (18.5, 0.075),
        (20.0, 0.0),
        (30.0, 0.0),
    ])
    def test_default_envelope(self, timeline, t, expected):
        """Test gain at points inside each segment."""
        assert timeline.gain_at(t) == pytest.approx(expected)

    def test_envelope_is_continuous_at_boundaries(self, timeline):
        """Test ramps meet the neighbouring constant segments."""
        eps = 1e-9
        for boundary in (timeline.fade_in_end, timeline.intro_end,
                         timeline.fade_down_end, timeline.narration_end):
            assert timeline.gain_at(boundary - eps) == pytest.approx(
                timeline.gain_at(boundary), abs=1e-6
            )

    def test_zero_segments_collapse(self):
        """Test zero-length ramps switch immediately."""
        timeline = MixTimeline(
            narration_duration=5, fade_in=0, intro=0, fade_down=0, fade_out=0, bgm_volume=0.5
        )
        assert timeline.gain_at(0.0) == 0.5
        assert timeline.gain_at(4.99) == 0.5
        assert timeline.gain_at(5.0) == 0.0

    def test_no_fade_down_drops_to_bgm_volume(self):
        """Test intro goes straight to bgm volume without a fade down."""
        timeline = MixTimeline(narration_duration=5, fade_in=1, intro=2, fade_down=0)
        assert timeline.gain_at(2.99) == 1.0
        assert timeline.gain_at(3.0) == 0.15


class TestVolumeExpression:
    """Test the ffmpeg expression rendering."""

    def test_default_expression(self, timeline):
        """Test full five-segment expression."""
        assert timeline.volume_expression() == EXPECTED_EXPR

    def test_collapsed_expression(self):
        """Test zero-length ramps are left out."""
        timeline = MixTimeline(
            narration_duration=5, fade_in=0, intro=0, fade_down=0, fade_out=0, bgm_volume=0.5
        )
        assert timeline.volume_expression() == "if(lt(t,0),1.0,if(lt(t,5),0.5,0))"

    def test_expression_has_no_ramp_for_zero_fade_in(self):
        """Test no division by a zero fade in."""
        timeline = MixTimeline(narration_duration=5, fade_in=0)
        assert "t/0" not in timeline.volume_expression()
        assert timeline.volume_expression().startswith("if(lt(t,3),1.0,")

    def test_filter_graph(self, timeline):
        """Test narration delay, BGM trim/envelope and mix chain."""
        graph = timeline.filter_graph()
        assert graph == (
            "[0:a]adelay=7000:all=1[nar];"
            "[1:a]atrim=0:20,asetpts=PTS-STARTPTS,"
            f"volume='{EXPECTED_EXPR}':eval=frame[bgm];"
            "[nar][bgm]amix=inputs=2:duration=longest:normalize=0[out]"
        )

    def test_filter_graph_with_loudnorm(self, timeline):
        """Test normalization is appended after the mix."""
        graph = timeline.filter_graph("loudnorm")
        assert graph.endswith("amix=inputs=2:duration=longest:normalize=0,loudnorm[out]")


class TestFormatNumber:
    """Test number rendering for expressions."""

    @pytest.mark.parametrize("value,expected", [
        (2.0, "2"),
        (0.15, "0.15"),
        (0.1 + 0.2, "0.3"),
        (12.345678, "12.345678"),
        (0.0, "0"),
        (-0.0, "0"),
    ])
    def test_format(self, value, expected):
        """Test trailing zeros and float noise are dropped."""
        assert format_number(value) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
