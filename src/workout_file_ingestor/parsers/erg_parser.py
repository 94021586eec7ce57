"""
ERG / MRC Parser

Parses vertex-based course files. ERG files carry absolute watts, MRC files
carry percent of FTP. Both share the same layout:

    [COURSE HEADER]
    VERSION = 2
    UNITS = ENGLISH
    DESCRIPTION = Workout Name
    FILE NAME = workout.erg
    FTP = 200            (ERG only)
    MINUTES WATTS        (MINUTES PERCENT for MRC)
    [END COURSE HEADER]
    [COURSE DATA]
    0    150
    10   150
    10   200
    20   200
    [END COURSE DATA]

Data points are vertices of a piecewise-linear power course. Two consecutive
points sharing the same minute value form an instantaneous step.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from workout_file_ingestor.config import settings

from .base import (
    REST_THRESHOLD,
    WorkoutFileParser,
    WorkoutParseError,
    finite_number,
    intensity_for_power,
    make_segment,
    round_half_up,
    segment_name,
)
from .models import ParsedWorkoutResult, Segment

logger = logging.getLogger(__name__)

HEADER_START = "[COURSE HEADER]"
HEADER_END = "[END COURSE HEADER]"
DATA_START = "[COURSE DATA]"
DATA_END = "[END COURSE DATA]"

HEADER_LINE_PATTERN = re.compile(r'^(\w[\w\s]*?)\s*=\s*(.*)$')

# Raw-unit change above which a segment is labelled a ramp
RAMP_THRESHOLD = 5

# Max course value still treated as percent when nothing else decides
PERCENT_HEURISTIC_MAX = 200


@dataclass
class CoursePoint:
    """A (minutes, value) vertex; value is watts (ERG) or percent (MRC)"""
    minutes: float
    value: float

    @property
    def seconds(self) -> int:
        return round_half_up(self.minutes * 60)


@dataclass
class CourseHeader:
    description: Optional[str] = None
    ftp: Optional[int] = None
    version: Optional[str] = None
    units: Optional[str] = None
    file_name: Optional[str] = None
    columns: Optional[str] = None  # "MINUTES WATTS" / "MINUTES PERCENT"


class ErgMrcParser(WorkoutFileParser):
    """Parser for .erg (watts) and .mrc (percent FTP) course files"""

    extensions = (".erg", ".mrc")

    def __init__(self, default_ftp: Optional[int] = None):
        self.default_ftp = default_ftp if default_ftp and default_ftp > 0 else settings.DEFAULT_FTP_WATTS

    def parse(
        self,
        content: str,
        filename: Optional[str] = None,
        ftp: Optional[int] = None,
    ) -> ParsedWorkoutResult:
        """Parse course text into a merged, contiguous segment timeline"""
        lines = [line.strip() for line in (content or "").splitlines()]

        header = self._parse_header(lines)
        points = self._parse_data_points(lines)

        if len(points) < 2:
            raise WorkoutParseError("ERG/MRC file must have at least 2 data points")

        is_percent = self._detect_percent_format(header, points, filename)
        if header.ftp and header.ftp > 0:
            ftp = header.ftp
        elif ftp and ftp > 0:
            logger.debug(f"ERG file has no FTP header, using athlete FTP {ftp}W")
        else:
            ftp = None
            if not is_percent:
                logger.warning(
                    f"ERG file has no FTP header, using {self.default_ftp}W baseline"
                )

        segments = self._merge_segments(self._create_segments(points, is_percent, ftp))
        if not segments:
            raise WorkoutParseError("ERG/MRC course data does not define any segment")

        source_format = "mrc" if is_percent else "erg"
        name = header.description or "Imported Workout"
        total_duration = segments[-1].end_time

        logger.info(
            f"Parsed {source_format.upper()} workout '{name}': "
            f"{len(segments)} segments, {total_duration}s"
        )

        return ParsedWorkoutResult(
            name=name,
            description=header.description,
            sport_type="bike",
            segments=segments,
            total_duration=total_duration,
            source_format=source_format,
            ftp=ftp if not is_percent else header.ftp,
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _parse_header(self, lines: List[str]) -> CourseHeader:
        header = CourseHeader()
        in_header = False

        for number, line in enumerate(lines, start=1):
            upper = line.upper()
            if HEADER_START in upper:
                in_header = True
                continue
            if HEADER_END in upper:
                break
            if not in_header or not line or _is_comment(line):
                continue

            if upper.startswith("MINUTES"):
                header.columns = " ".join(upper.split())
                continue

            match = HEADER_LINE_PATTERN.match(line)
            if not match:
                raise WorkoutParseError(f"Malformed course header on line {number}: {line!r}")

            key = " ".join(match.group(1).split()).upper()
            value = match.group(2).strip()

            if key == "DESCRIPTION":
                header.description = value or None
            elif key == "FTP":
                try:
                    header.ftp = round_half_up(finite_number(value, f"FTP on line {number}"))
                except WorkoutParseError:
                    raise
                except ValueError as e:
                    raise WorkoutParseError(f"Invalid FTP value on line {number}: {value!r}") from e
            elif key == "VERSION":
                header.version = value
            elif key == "UNITS":
                header.units = value
            elif key == "FILE NAME":
                header.file_name = value

        logger.debug(f"Course header: {header}")
        return header

    def _parse_data_points(self, lines: List[str]) -> List[CoursePoint]:
        points: List[CoursePoint] = []
        in_data = False

        for number, line in enumerate(lines, start=1):
            upper = line.upper()
            if DATA_START in upper:
                in_data = True
                continue
            if DATA_END in upper:
                break
            if not in_data or not line or _is_comment(line):
                continue

            parts = line.split()
            try:
                if len(parts) < 2:
                    raise ValueError("expected minutes and value")
                where = f"course data on line {number}"
                point = CoursePoint(finite_number(parts[0], where), finite_number(parts[1], where))
            except WorkoutParseError:
                raise
            except ValueError as e:
                raise WorkoutParseError(f"Malformed course data on line {number}: {line!r}") from e

            if point.minutes < 0 or point.value < 0:
                raise WorkoutParseError(f"Negative course data on line {number}: {line!r}")
            if points and point.minutes < points[-1].minutes:
                raise WorkoutParseError(f"Course data goes back in time on line {number}: {line!r}")
            if not points and point.minutes != 0:
                raise WorkoutParseError(f"Course data must start at minute 0 (line {number})")

            points.append(point)

        return points

    def _detect_percent_format(
        self,
        header: CourseHeader,
        points: List[CoursePoint],
        filename: Optional[str],
    ) -> bool:
        """Decide between percent (MRC) and watts (ERG) values"""
        if header.columns:
            if "PERCENT" in header.columns:
                return True
            if "WATTS" in header.columns:
                return False

        for hint in (filename, header.file_name):
            if not hint:
                continue
            lower = hint.lower()
            if lower.endswith(".mrc"):
                return True
            if lower.endswith(".erg"):
                return False

        max_value = max(p.value for p in points)
        logger.debug(f"No format marker, max course value {max_value}")
        return max_value <= PERCENT_HEURISTIC_MAX

    # ------------------------------------------------------------------
    # Segmentation
    # ------------------------------------------------------------------

    def _create_segments(
        self,
        points: List[CoursePoint],
        is_percent: bool,
        ftp: Optional[int],
    ) -> List[Segment]:
        segments: List[Segment] = []

        i = 0
        while i < len(points) - 1:
            start = points[i]

            # Vertical edge, the next point opens the following segment
            if start.minutes == points[i + 1].minutes:
                i += 1
                continue

            end_index = i + 1
            while end_index < len(points) - 1:
                if points[end_index].minutes == points[end_index + 1].minutes:
                    break
                end_index += 1
            end = points[end_index]

            if end.seconds > start.seconds:
                power_start = self._to_percent(start.value, is_percent, ftp)
                power_end = self._to_percent(end.value, is_percent, ftp)
                average = (power_start + power_end) / 2
                is_ramp = abs(end.value - start.value) > RAMP_THRESHOLD

                segments.append(make_segment(
                    start.seconds,
                    end.seconds,
                    power_start,
                    power_end,
                    intensity_for_power(average),
                    _course_segment_name(average, is_ramp),
                ))

            i = end_index

        return segments

    def _merge_segments(self, segments: List[Segment]) -> List[Segment]:
        """Coalesce adjacent segments sharing the same power band"""
        merged: List[Segment] = []

        for segment in segments:
            previous = merged[-1] if merged else None
            if (
                previous is not None
                and previous.power_min == segment.power_min
                and previous.power_max == segment.power_max
                and previous.end_time == segment.start_time
            ):
                merged[-1] = previous.model_copy(update={
                    "end_time": segment.end_time,
                    "duration": segment.end_time - previous.start_time,
                })
            else:
                merged.append(segment)

        return merged

    def _to_percent(self, value: float, is_percent: bool, ftp: Optional[int]) -> float:
        if is_percent:
            return value
        return value / (ftp or self.default_ftp) * 100


def _course_segment_name(power: float, is_ramp: bool) -> str:
    if is_ramp:
        return "Warm Up" if power < REST_THRESHOLD else "Ramp"
    return segment_name(power)


def _is_comment(line: str) -> bool:
    return line.startswith((";", "#"))
