"""
Workout conversion service.

Turns a parsed segment timeline into the nested step structure used by the
calendar/scheduling side, attaching planned TSS, IF and intensity category.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from workout_file_ingestor.models import (
    ConvertedWorkout,
    WorkoutLength,
    WorkoutStepData,
    WorkoutStepWrapper,
    WorkoutTarget,
)
from workout_file_ingestor.parsers import parse_workout
from workout_file_ingestor.parsers.models import ParsedWorkoutResult, Segment
from workout_file_ingestor.services.metrics import calculate_metrics, intensity_category

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50
_SLUG_SEPARATORS = re.compile(r'[^a-z0-9]+')


def generate_slug(name: str) -> str:
    """URL-safe slug: lowercase, dash separated, at most 50 characters."""
    slug = _SLUG_SEPARATORS.sub('-', name.lower()).strip('-')
    return slug[:SLUG_MAX_LENGTH]


def convert_to_structure(segments: Sequence[Segment]) -> List[WorkoutStepWrapper]:
    """Wrap every segment in a single-repetition step carrying one target band."""
    structure: List[WorkoutStepWrapper] = []

    for segment in segments:
        step = WorkoutStepData(
            name=segment.name,
            length=WorkoutLength(value=segment.duration, unit='second'),
            targets=[
                WorkoutTarget(
                    min_value=segment.power_min,
                    max_value=segment.power_max,
                    cadence_min=segment.cadence_min,
                    cadence_max=segment.cadence_max,
                )
            ],
            intensity_class=segment.intensity_class,
            open_duration=False,
        )
        structure.append(
            WorkoutStepWrapper(
                steps=[step],
                begin=segment.start_time,
                end=segment.end_time,
            )
        )

    return structure


def convert_to_workout(
    parsed: ParsedWorkoutResult,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> ConvertedWorkout:
    """
    Convert a parsed workout to the internal workout format.

    Args:
        parsed: Result of one of the workout file parsers
        name: Overrides the name found in the file
        description: Overrides the description found in the file
    """
    workout_name = name or parsed.name
    metrics = calculate_metrics(parsed.segments)

    converted = ConvertedWorkout(
        name=workout_name,
        slug=generate_slug(workout_name),
        description=(
            description
            or parsed.description
            or f"Imported from {parsed.source_format.upper()} file"
        ),
        duration_seconds=parsed.total_duration,
        tss_planned=metrics.tss,
        if_planned=metrics.intensity_factor,
        workout_type='indoorCycling',
        environment='INDOOR',
        intensity=intensity_category(metrics.intensity_factor),
        structure=convert_to_structure(parsed.segments),
        raw_json={
            'source_format': parsed.source_format,
            'original_name': parsed.name,
            'author': parsed.author,
            'imported_at': datetime.now(timezone.utc).isoformat(),
            'segments': [segment.model_dump() for segment in parsed.segments],
        },
        source_format=parsed.source_format,
    )

    logger.info(
        f"Converted '{converted.name}' ({parsed.source_format}): "
        f"TSS {converted.tss_planned}, IF {converted.if_planned}, {converted.intensity}"
    )
    return converted


def parse_and_convert(
    content: str,
    filename: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    ftp: Optional[int] = None,
) -> ConvertedWorkout:
    """Parse workout file text and convert it in one step."""
    parsed = parse_workout(content, filename, ftp=ftp)
    return convert_to_workout(parsed, name=name, description=description)
