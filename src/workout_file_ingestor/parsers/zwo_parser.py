"""
ZWO Parser

Parses Zwift workout files (.zwo). Power attributes are fractions of FTP
(0.75 = 75% FTP). Supported workout elements:
- Warmup: ramp from PowerLow up to PowerHigh
- Cooldown: ramp from PowerHigh down to PowerLow
- SteadyState: constant power
- IntervalsT: repeated OnPower/OffPower pairs
- FreeRide: open effort with a placeholder band
- Ramp: power ramp from PowerLow to PowerHigh
"""

import logging
import math
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Optional

from workout_file_ingestor.config import settings

from .base import (
    FREE_RIDE_BAND,
    WorkoutFileParser,
    WorkoutParseError,
    fraction_to_percent,
    intensity_for_power,
    make_segment,
    round_half_up,
    segment_name,
)
from .models import IntensityClass, ParsedWorkoutResult, Segment

logger = logging.getLogger(__name__)

SPORT_TYPES = {"bike": "bike", "run": "run", "swim": "swim"}

# Upper bound on IntervalsT repeats, each one yields up to two segments
MAX_INTERVAL_REPEATS = 500


class ZwoParser(WorkoutFileParser):
    """Parser for Zwift .zwo workout files"""

    extensions = (".zwo",)

    def __init__(self, ramp_segment_count: Optional[int] = None):
        self.ramp_segment_count = ramp_segment_count or settings.RAMP_SEGMENT_COUNT
        self._handlers: Dict[str, Callable[[Dict[str, float], int], List[Segment]]] = {
            "warmup": self._process_warmup,
            "cooldown": self._process_cooldown,
            "steadystate": self._process_steady_state,
            "intervalst": self._process_intervals,
            "freeride": self._process_free_ride,
            "ramp": self._process_ramp,
        }

    def parse(
        self,
        content: str,
        filename: Optional[str] = None,
        ftp: Optional[int] = None,
    ) -> ParsedWorkoutResult:
        """Parse ZWO markup into a contiguous segment timeline"""
        root = self._load_root(content)

        name = self._find_text(root, "name") or "Imported Workout"
        author = self._find_text(root, "author")
        description = self._find_text(root, "description")
        sport_type = (self._find_text(root, "sportType") or "bike").lower()

        workout = self._find_element(root, "workout")
        if workout is None:
            raise WorkoutParseError("No <workout> section found in ZWO file")

        segments: List[Segment] = []
        current_time = 0

        for element in workout:
            tag = _local_tag(element).lower()
            handler = self._handlers.get(tag)
            if handler is None:
                logger.debug(f"Skipping unsupported ZWO element <{_local_tag(element)}>")
                continue

            new_segments = handler(_numeric_attributes(element), current_time)
            segments.extend(new_segments)
            if new_segments:
                current_time = new_segments[-1].end_time

        logger.info(
            f"Parsed ZWO workout '{name}': {len(segments)} segments, {current_time}s"
        )

        return ParsedWorkoutResult(
            name=name,
            author=author,
            description=description,
            sport_type=SPORT_TYPES.get(sport_type, "other"),
            segments=segments,
            total_duration=current_time,
            source_format="zwo",
        )

    def _load_root(self, content: str) -> ET.Element:
        text = (content or "").lstrip("\ufeff").strip()
        if not text:
            raise WorkoutParseError("ZWO file is empty: no root element found")
        try:
            return ET.fromstring(text)
        except ET.ParseError as e:
            raise WorkoutParseError(f"Invalid ZWO markup: {e}") from e

    def _find_element(self, root: ET.Element, tag: str) -> Optional[ET.Element]:
        wanted = tag.lower()
        for element in root.iter():
            if _local_tag(element).lower() == wanted:
                return element
        return None

    def _find_text(self, root: ET.Element, tag: str) -> Optional[str]:
        element = self._find_element(root, tag)
        if element is None or element.text is None:
            return None
        return element.text.strip() or None

    # ------------------------------------------------------------------
    # Element handlers
    # ------------------------------------------------------------------

    def _process_warmup(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        duration = _seconds(attrs.get("duration", 600))
        power_low = fraction_to_percent(attrs.get("powerlow", 0.35))
        power_high = fraction_to_percent(attrs.get("powerhigh", 0.65))

        return self._ramp_segments(
            start_time, duration, power_low, power_high,
            IntensityClass.WARMUP, "Warm Up",
        )

    def _process_cooldown(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        duration = _seconds(attrs.get("duration", 600))
        power_high = fraction_to_percent(attrs.get("powerhigh", 0.55))
        power_low = fraction_to_percent(attrs.get("powerlow", 0.35))

        # Cooldown runs the ramp in reverse
        return self._ramp_segments(
            start_time, duration, power_high, power_low,
            IntensityClass.COOLDOWN, "Cool Down",
        )

    def _process_ramp(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        duration = _seconds(attrs.get("duration", 300))
        power_low = fraction_to_percent(attrs.get("powerlow", 0.5))
        power_high = fraction_to_percent(attrs.get("powerhigh", 1.0))
        intensity = intensity_for_power((power_low + power_high) / 2)

        return self._ramp_segments(
            start_time, duration, power_low, power_high, intensity, "Ramp",
        )

    def _process_steady_state(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        duration = _seconds(attrs.get("duration", 300))
        if duration <= 0:
            return []
        power = fraction_to_percent(attrs.get("power", 0.75))
        cadence_min, cadence_max = _cadence_band(attrs)

        return [
            make_segment(
                start_time, start_time + duration, power, power,
                intensity_for_power(power), segment_name(power),
                cadence_min, cadence_max,
            )
        ]

    def _process_intervals(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        repeat = round_half_up(attrs.get("repeat", 1))
        if repeat > MAX_INTERVAL_REPEATS:
            raise WorkoutParseError(
                f"IntervalsT Repeat={repeat} exceeds the maximum of {MAX_INTERVAL_REPEATS}"
            )
        on_duration = _seconds(attrs.get("onduration", 60))
        off_duration = _seconds(attrs.get("offduration", 60))
        on_power = fraction_to_percent(attrs.get("onpower", 1.0))
        off_power = fraction_to_percent(attrs.get("offpower", 0.5))
        cadence = _optional_int(attrs.get("cadence"))
        cadence_resting = _optional_int(attrs.get("cadenceresting"))

        segments: List[Segment] = []
        current_time = start_time

        for i in range(max(repeat, 0)):
            if on_duration > 0:
                segments.append(make_segment(
                    current_time, current_time + on_duration, on_power, on_power,
                    intensity_for_power(on_power), f"Interval {i + 1} - ON",
                    cadence, cadence,
                ))
                current_time += on_duration

            if off_duration > 0:
                segments.append(make_segment(
                    current_time, current_time + off_duration, off_power, off_power,
                    IntensityClass.REST, f"Interval {i + 1} - Recovery",
                    cadence_resting, cadence_resting,
                ))
                current_time += off_duration

        return segments

    def _process_free_ride(self, attrs: Dict[str, float], start_time: int) -> List[Segment]:
        duration = _seconds(attrs.get("duration", 600))
        if duration <= 0:
            return []
        cadence_min, cadence_max = _cadence_band(attrs)
        low, high = FREE_RIDE_BAND

        return [
            make_segment(
                start_time, start_time + duration, low, high,
                IntensityClass.ACTIVE, "Free Ride",
                cadence_min, cadence_max,
            )
        ]

    def _ramp_segments(
        self,
        start_time: int,
        total_duration: int,
        power_start: int,
        power_end: int,
        intensity: IntensityClass,
        base_name: str,
    ) -> List[Segment]:
        """Discretize a linear ramp into equal-duration sub-segments"""
        if total_duration <= 0:
            return []

        count = min(self.ramp_segment_count, total_duration)
        power_step = (power_end - power_start) / count
        boundaries = [
            start_time + round_half_up(total_duration * i / count) for i in range(count + 1)
        ]

        segments = []
        for i in range(count):
            segments.append(make_segment(
                boundaries[i],
                boundaries[i + 1],
                power_start + i * power_step,
                power_start + (i + 1) * power_step,
                intensity,
                base_name,
            ))

        return segments


def _local_tag(element: ET.Element) -> str:
    """Element tag without any namespace prefix"""
    tag = element.tag if isinstance(element.tag, str) else ""
    return tag.rsplit("}", 1)[-1]


def _numeric_attributes(element: ET.Element) -> Dict[str, float]:
    """Lowercased attribute names mapped to their numeric values"""
    attrs: Dict[str, float] = {}
    for key, value in element.attrib.items():
        try:
            number = float(value)
        except ValueError:
            logger.debug(f"Ignoring non-numeric ZWO attribute {key}={value!r}")
            continue
        if not math.isfinite(number):
            raise WorkoutParseError(
                f"Non-finite number {value!r} in <{_local_tag(element)}> attribute {key}"
            )
        attrs[key.lower()] = number
    return attrs


def _seconds(value: float) -> int:
    return round_half_up(value)


def _optional_int(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return round_half_up(value)


def _cadence_band(attrs: Dict[str, float]):
    cadence = _optional_int(attrs.get("cadence"))
    low = _optional_int(attrs.get("cadencelow"))
    high = _optional_int(attrs.get("cadencehigh"))
    if low is not None or high is not None:
        low = low if low is not None else high
        high = high if high is not None else low
        return min(low, high), max(low, high)
    return cadence, cadence
