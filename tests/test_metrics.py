"""Unit tests for training load metrics."""
import pytest

from workout_file_ingestor.parsers.base import round_half_up
from workout_file_ingestor.parsers.models import Segment
from workout_file_ingestor.services.metrics import (
    calculate_metrics,
    intensity_category,
    normalized_power,
)


def _segment(start: int, end: int, power_min: int, power_max: int = None) -> Segment:
    return Segment(
        start_time=start,
        end_time=end,
        duration=end - start,
        power_min=power_min,
        power_max=power_min if power_max is None else power_max,
        intensity_class="active",
        name="Test",
    )


class TestMetrics:
    """NP, IF and TSS."""

    def test_one_hour_at_ninety_percent(self):
        metrics = calculate_metrics([_segment(0, 3600, 90)])

        assert metrics.intensity_factor == 0.90
        assert metrics.tss == 81
        assert metrics.duration_seconds == 3600
        assert metrics.normalized_power == pytest.approx(0.90)

    def test_one_hour_at_threshold_is_100_tss(self):
        metrics = calculate_metrics([_segment(0, 3600, 100)])

        assert metrics.intensity_factor == 1.0
        assert metrics.tss == 100

    def test_band_midpoint_is_used(self):
        assert normalized_power([_segment(0, 600, 60, 80)]) == pytest.approx(0.70)

    def test_variable_effort_weights_hard_work(self):
        metrics = calculate_metrics([_segment(0, 1800, 100), _segment(1800, 3600, 50)])

        # A plain average would give 0.75
        assert metrics.intensity_factor == 0.85
        assert metrics.tss == 72

    def test_split_segments_match_single_segment(self):
        whole = calculate_metrics([_segment(0, 3600, 90)])
        split = calculate_metrics([_segment(0, 1200, 90), _segment(1200, 3600, 90)])
        assert split.normalized_power == pytest.approx(whole.normalized_power)
        assert (split.intensity_factor, split.tss) == (whole.intensity_factor, whole.tss)

    def test_empty_timeline(self):
        metrics = calculate_metrics([])

        assert metrics.normalized_power == 0.0
        assert metrics.intensity_factor == 0.0
        assert metrics.tss == 0
        assert metrics.duration_seconds == 0

    def test_does_not_modify_segments(self):
        segments = [_segment(0, 600, 70, 90)]
        snapshot = [s.model_copy() for s in segments]

        calculate_metrics(segments)

        assert segments == snapshot

    def test_sap_erg_metrics(self, sap_erg):
        from workout_file_ingestor.parsers import parse_workout

        metrics = calculate_metrics(parse_workout(sap_erg, "test.erg").segments)

        assert metrics.intensity_factor == 0.62
        assert metrics.tss == 115


@pytest.mark.parametrize("intensity_factor,category", [
    (0.0, "EASY"),
    (0.64, "EASY"),
    (0.65, "MODERATE"),
    (0.79, "MODERATE"),
    (0.80, "HARD"),
    (0.94, "HARD"),
    (0.95, "VERY_HARD"),
    (1.2, "VERY_HARD"),
])
def test_intensity_category(intensity_factor, category):
    assert intensity_category(intensity_factor) == category


class TestRounding:
    """Ties round up, matching the published TSS/IF figures."""

    def test_tss_tie_rounds_up(self):
        metrics = calculate_metrics([_segment(0, 7200, 75)])

        assert metrics.intensity_factor == 0.75
        assert metrics.tss == 113

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (2.5, 3),
        (62.5, 63),
        (112.5, 113),
        (74.4, 74),
        (0.0, 0),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected
