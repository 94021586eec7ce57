"""
Base Parser

Abstract interface for workout file parsers plus the power-band helpers
they share.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from .models import IntensityClass, ParsedWorkoutResult, Segment

# Upper bounds (exclusive, % FTP) of the named power bands
POWER_BANDS: Tuple[Tuple[int, str], ...] = (
    (56, "Recovery"),
    (76, "Endurance"),
    (90, "Tempo"),
    (105, "Threshold"),
    (120, "VO2max"),
)
TOP_BAND_NAME = "Anaerobic"

# Below this (% FTP) a segment counts as rest
REST_THRESHOLD = 56

# Placeholder band for open efforts with no power target
FREE_RIDE_BAND = (40, 80)


class WorkoutParseError(ValueError):
    """Raised when a workout file is invalid."""


class UnsupportedFormatError(WorkoutParseError):
    """Raised when no parser handles the file's extension."""


class WorkoutFileParser(ABC):
    """Interface implemented by every text workout file parser"""

    #: Extensions (lowercase, with dot) this parser handles
    extensions: Tuple[str, ...] = ()

    def supports(self, filename: str) -> bool:
        """Check if this parser can handle the given filename."""
        return filename.lower().endswith(self.extensions)

    @abstractmethod
    def parse(
        self,
        content: str,
        filename: Optional[str] = None,
        ftp: Optional[int] = None,
    ) -> ParsedWorkoutResult:
        """
        Parse file content into a normalized segment timeline.

        Args:
            content: Raw file text
            filename: Original filename, used as a format hint where relevant
            ftp: Athlete FTP (watts) for files with absolute watts and no FTP of their own

        Returns:
            ParsedWorkoutResult with contiguous, time-ordered segments

        Raises:
            WorkoutParseError: If the content is invalid
        """
        ...


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (0.5 -> 1, 62.5 -> 63)."""
    return int(math.floor(value + 0.5))


def finite_number(raw: str, what: str) -> float:
    """Parse a number, rejecting inf/nan as a WorkoutParseError naming ``what``."""
    value = float(raw)
    if not math.isfinite(value):
        raise WorkoutParseError(f"Non-finite number {raw!r} in {what}")
    return value


def fraction_to_percent(fraction: float) -> int:
    """Convert a fraction of FTP (0.75) to integer percent (75)."""
    return round_half_up(fraction * 100)


def segment_name(power: float) -> str:
    """Human-readable label for a power level in % FTP."""
    for upper, label in POWER_BANDS:
        if power < upper:
            return label
    return TOP_BAND_NAME


def intensity_for_power(power: float) -> IntensityClass:
    """Intensity class for a constant-effort power level in % FTP."""
    if power < REST_THRESHOLD:
        return IntensityClass.REST
    return IntensityClass.ACTIVE


def make_segment(
    start_time: int,
    end_time: int,
    power_a: float,
    power_b: float,
    intensity_class: IntensityClass,
    name: str,
    cadence_min: Optional[int] = None,
    cadence_max: Optional[int] = None,
) -> Segment:
    """Build a segment, ordering the band endpoints as [min, max]."""
    low, high = sorted((round_half_up(power_a), round_half_up(power_b)))
    return Segment(
        start_time=start_time,
        end_time=end_time,
        duration=end_time - start_time,
        power_min=low,
        power_max=high,
        intensity_class=intensity_class,
        name=name,
        cadence_min=cadence_min,
        cadence_max=cadence_max,
    )
