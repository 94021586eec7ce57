"""
Training load metrics for parsed workouts.

All power values are % FTP, so the normalized power computed here is already
FTP-relative and doubles as the intensity factor.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from workout_file_ingestor.parsers.base import round_half_up
from workout_file_ingestor.parsers.models import Segment

# Upper bounds (exclusive) of intensity factor per category
INTENSITY_CATEGORY_THRESHOLDS = (
    (0.65, "EASY"),
    (0.80, "MODERATE"),
    (0.95, "HARD"),
)
TOP_INTENSITY_CATEGORY = "VERY_HARD"


@dataclass(frozen=True)
class WorkoutMetrics:
    normalized_power: float  # fraction of FTP
    intensity_factor: float  # 2dp
    tss: int
    duration_seconds: int


def normalized_power(segments: Sequence[Segment]) -> float:
    """4th-power weighted average of segment band midpoints, as a fraction of FTP."""
    weighted = 0.0
    total_duration = 0

    for segment in segments:
        midpoint = (segment.power_min + segment.power_max) / 2 / 100
        weighted += midpoint ** 4 * segment.duration
        total_duration += segment.duration

    if total_duration == 0:
        return 0.0

    return (weighted / total_duration) ** 0.25


def calculate_metrics(segments: Sequence[Segment]) -> WorkoutMetrics:
    """Normalized power, intensity factor and TSS for a segment timeline."""
    total_duration = sum(segment.duration for segment in segments)
    if total_duration == 0:
        return WorkoutMetrics(normalized_power=0.0, intensity_factor=0.0, tss=0, duration_seconds=0)

    np_fraction = normalized_power(segments)
    intensity_factor = round_half_up(np_fraction * 100) / 100
    hours = total_duration / 3600
    tss = round_half_up(hours * intensity_factor ** 2 * 100)

    return WorkoutMetrics(
        normalized_power=np_fraction,
        intensity_factor=intensity_factor,
        tss=tss,
        duration_seconds=total_duration,
    )


def intensity_category(intensity_factor: float) -> str:
    """EASY / MODERATE / HARD / VERY_HARD bucket for an intensity factor."""
    for upper, category in INTENSITY_CATEGORY_THRESHOLDS:
        if intensity_factor < upper:
            return category
    return TOP_INTENSITY_CATEGORY
