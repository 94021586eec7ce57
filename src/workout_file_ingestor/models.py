"""Data models for converted workouts."""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal, Union

from workout_file_ingestor.parsers.models import IntensityClass

Environment = Literal['INDOOR', 'OUTDOOR', 'ANY']
IntensityCategory = Literal['EASY', 'MODERATE', 'HARD', 'VERY_HARD']


class WorkoutLength(BaseModel):
    """Length of a step or block."""
    value: int
    unit: Literal['second', 'minute', 'repetition']


class WorkoutTarget(BaseModel):
    """Target band for a step. Power values are % FTP."""
    min_value: int
    max_value: int
    cadence_min: Optional[int] = None  # RPM
    cadence_max: Optional[int] = None  # RPM
    hr_min: Optional[int] = None  # BPM or %
    hr_max: Optional[int] = None  # BPM or %
    hr_type: Optional[Literal['bpm', 'percent']] = None


class WorkoutStepData(BaseModel):
    """A single timed effort."""
    type: Literal['step'] = 'step'
    name: Optional[str] = None
    length: WorkoutLength
    targets: List[WorkoutTarget] = Field(default_factory=list)
    intensity_class: IntensityClass
    open_duration: bool = False

    class Config:
        use_enum_values = True


class WorkoutStepWrapper(BaseModel):
    """
    Single-repetition wrapper around one step.

    begin/end are the step's position on the workout timeline (seconds).
    """
    type: Literal['step'] = 'step'
    length: WorkoutLength = Field(
        default_factory=lambda: WorkoutLength(value=1, unit='repetition')
    )
    steps: List[WorkoutStepData] = Field(default_factory=list)
    begin: Optional[int] = None
    end: Optional[int] = None


class WorkoutRepetition(BaseModel):
    """Block of steps (or nested repetitions) repeated length.value times."""
    type: Literal['repetition'] = 'repetition'
    length: WorkoutLength
    steps: List[Union[WorkoutStepData, 'WorkoutRepetition']] = Field(default_factory=list)
    begin: Optional[int] = None
    end: Optional[int] = None


WorkoutRepetition.model_rebuild()

WorkoutStructureItem = Union[WorkoutStepWrapper, WorkoutRepetition]


class ConvertedWorkout(BaseModel):
    """Workout in the internal format handed to persistence/scheduling."""
    name: str
    slug: str
    description: str
    duration_seconds: int
    tss_planned: int
    if_planned: float
    workout_type: str = 'indoorCycling'
    environment: Environment = 'INDOOR'
    intensity: IntensityCategory
    structure: List[WorkoutStructureItem] = Field(default_factory=list)
    raw_json: Dict[str, Any] = Field(default_factory=dict)
    source_format: str
