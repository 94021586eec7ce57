"""
FIT Planned Workout Converter

Decodes FIT workout files with fitparse and maps their ``workout`` /
``workout_step`` messages onto the same segment timeline the text parsers
produce. Decoding is fitparse's job; this module only interprets the
decoded message dicts.
"""

import gzip
import io
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fitparse import FitFile
from fitparse.utils import FitParseError

from workout_file_ingestor.config import settings

from .base import (
    FREE_RIDE_BAND,
    WorkoutParseError,
    make_segment,
    round_half_up,
    segment_name,
)
from .models import IntensityClass, ParsedWorkoutResult, Segment

logger = logging.getLogger(__name__)

FitMessages = Dict[str, List[Dict[str, Any]]]

# Leading bytes of a gzip stream
GZIP_MAGIC = b"\x1f\x8b"

# FIT custom power targets above this are watts + 1000, at or below are % FTP
FIT_POWER_WATTS_OFFSET = 1000

# Coggan power zones (% FTP) used for zone-based targets
POWER_ZONE_BANDS: Dict[int, Tuple[int, int]] = {
    1: (0, 55),
    2: (56, 75),
    3: (76, 90),
    4: (91, 105),
    5: (106, 120),
    6: (121, 150),
    7: (151, 200),
}

SPORT_TYPES = {"cycling": "bike", "running": "run", "swimming": "swim"}

INTENSITY_CLASSES = {
    "warmup": IntensityClass.WARMUP,
    "cooldown": IntensityClass.COOLDOWN,
    "rest": IntensityClass.REST,
    "recovery": IntensityClass.REST,
}

DEFAULT_STEP_NAMES = {
    IntensityClass.WARMUP: "Warm Up",
    IntensityClass.COOLDOWN: "Cool Down",
    IntensityClass.REST: "Recovery",
}


@dataclass
class TimedStep:
    """A workout step with a fixed duration and resolved power band"""
    duration: int
    power_low: float
    power_high: float
    intensity_class: IntensityClass
    name: str
    cadence_min: Optional[int] = None
    cadence_max: Optional[int] = None


def supports_fit(filename: str) -> bool:
    return filename.lower().endswith(".fit")


def decode_fit_messages(data: bytes) -> FitMessages:
    """Decode FIT bytes (optionally gzip-compressed) into workout / workout_step message dicts."""
    if data.startswith(GZIP_MAGIC):
        logger.info("Decompressing gzipped FIT file")
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as e:
            raise WorkoutParseError(f"Invalid gzip-compressed FIT file: {e}") from e

    try:
        fit_file = FitFile(io.BytesIO(data))
        return {
            name: [{field.name: field.value for field in message}
                   for message in fit_file.get_messages(name)]
            for name in ("workout", "workout_step")
        }
    except FitParseError as e:
        raise WorkoutParseError(f"Invalid FIT file: {e}") from e


def parse_fit_workout(data: bytes, ftp: Optional[int] = None) -> ParsedWorkoutResult:
    """Decode a FIT planned workout and convert it to a segment timeline."""
    return convert_fit_messages(decode_fit_messages(data), ftp=ftp)


def convert_fit_messages(messages: FitMessages, ftp: Optional[int] = None) -> ParsedWorkoutResult:
    """
    Convert decoded FIT workout messages into a ParsedWorkoutResult.

    Args:
        messages: ``{"workout": [...], "workout_step": [...]}`` field dicts
        ftp: Athlete FTP in watts, for steps targeting absolute watts

    Raises:
        WorkoutParseError: If there is no workout data or no timed step
    """
    workout_msgs = messages.get("workout") or []
    step_msgs = messages.get("workout_step") or []
    if not workout_msgs and not step_msgs:
        raise WorkoutParseError("No workout data found in FIT file")

    workout_msg = workout_msgs[0] if workout_msgs else {}
    name = workout_msg.get("wkt_name") or "Imported Workout"
    sport = str(workout_msg.get("sport") or "").lower()

    timed_steps = _expand_steps(step_msgs, ftp or settings.DEFAULT_FTP_WATTS)
    if not timed_steps:
        raise WorkoutParseError("FIT workout has no time-based steps")

    segments: List[Segment] = []
    current_time = 0
    for step in timed_steps:
        segments.append(make_segment(
            current_time,
            current_time + step.duration,
            step.power_low,
            step.power_high,
            step.intensity_class,
            step.name,
            step.cadence_min,
            step.cadence_max,
        ))
        current_time += step.duration

    logger.info(f"Converted FIT workout '{name}': {len(segments)} segments, {current_time}s")

    return ParsedWorkoutResult(
        name=name,
        sport_type=SPORT_TYPES.get(sport, "other") if sport else "bike",
        segments=segments,
        total_duration=current_time,
        source_format="fit",
        ftp=ftp,
    )


def _expand_steps(step_msgs: Sequence[Dict[str, Any]], ftp: int) -> List[TimedStep]:
    """Flatten steps, unrolling repeat steps into their repeated blocks"""
    expanded: List[List[TimedStep]] = []

    for index, msg in enumerate(step_msgs):
        duration_type = str(msg.get("duration_type") or "time").lower()

        if duration_type.startswith("repeat"):
            expanded.append(_repeat_block(msg, index, expanded))
            continue

        duration = _step_duration(msg, duration_type)
        if duration is None:
            logger.warning(
                f"Skipping FIT step {index} with non-time duration '{duration_type}'"
            )
            expanded.append([])
            continue

        expanded.append([_timed_step(msg, duration, ftp)])

    return [step for block in expanded for step in block]


def _repeat_block(
    msg: Dict[str, Any],
    index: int,
    expanded: List[List[TimedStep]],
) -> List[TimedStep]:
    """Extra copies of steps[from_step:index] for a repeat step"""
    from_step = _first_int(msg, "duration_step", "duration_value")
    total = _first_int(msg, "repeat_steps", "target_value")
    if from_step is None or total is None or not 0 <= from_step < index:
        logger.warning(f"Ignoring malformed FIT repeat step {index}")
        return []

    block = [step for part in expanded[from_step:index] for step in part]
    return block * max(total - 1, 0)


def _step_duration(msg: Dict[str, Any], duration_type: str) -> Optional[int]:
    if duration_type != "time":
        return None
    seconds = _first_number(msg, "duration_time")
    if seconds is None:
        milliseconds = _first_number(msg, "duration_value")
        if milliseconds is None:
            return None
        seconds = milliseconds / 1000
    seconds = round_half_up(seconds)
    return seconds if seconds > 0 else None


def _timed_step(msg: Dict[str, Any], duration: int, ftp: int) -> TimedStep:
    intensity = str(msg.get("intensity") or "active").lower()
    intensity_class = INTENSITY_CLASSES.get(intensity, IntensityClass.ACTIVE)

    power_low, power_high = _power_band(msg, ftp)
    cadence_min, cadence_max = _cadence_band(msg)

    name = msg.get("wkt_step_name")
    if not name:
        name = DEFAULT_STEP_NAMES.get(intensity_class) or segment_name((power_low + power_high) / 2)

    return TimedStep(
        duration=duration,
        power_low=power_low,
        power_high=power_high,
        intensity_class=intensity_class,
        name=name,
        cadence_min=cadence_min,
        cadence_max=cadence_max,
    )


def _power_band(msg: Dict[str, Any], ftp: int) -> Tuple[float, float]:
    target_type = str(msg.get("target_type") or "").lower()
    if target_type and "power" not in target_type:
        return FREE_RIDE_BAND

    low = _first_number(msg, "custom_target_power_low", "custom_target_value_low")
    high = _first_number(msg, "custom_target_power_high", "custom_target_value_high")
    if low is not None or high is not None:
        low = low if low is not None else high
        high = high if high is not None else low
        return _fit_power_percent(low, ftp), _fit_power_percent(high, ftp)

    zone = _first_int(msg, "target_power_zone", "target_value")
    if zone in POWER_ZONE_BANDS:
        return POWER_ZONE_BANDS[zone]

    return FREE_RIDE_BAND


def _fit_power_percent(value: float, ftp: int) -> float:
    if value > FIT_POWER_WATTS_OFFSET:
        return (value - FIT_POWER_WATTS_OFFSET) / ftp * 100
    return value


def _cadence_band(msg: Dict[str, Any]) -> Tuple[Optional[int], Optional[int]]:
    if "cadence" not in str(msg.get("target_type") or "").lower():
        return None, None
    low = _first_int(msg, "custom_target_cadence_low", "custom_target_value_low")
    high = _first_int(msg, "custom_target_cadence_high", "custom_target_value_high")
    return low, high


def _first_number(msg: Dict[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = msg.get(key)
        if isinstance(value, (int, float)) and math.isfinite(value):
            return float(value)
    return None


def _first_int(msg: Dict[str, Any], *keys: str) -> Optional[int]:
    value = _first_number(msg, *keys)
    return round_half_up(value) if value is not None else None
