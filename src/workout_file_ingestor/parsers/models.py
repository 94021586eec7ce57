"""
Parser Models

Pydantic models for the normalized segment timeline that all workout file
parsers output to.
"""

from typing import List, Optional, Literal
from pydantic import BaseModel, Field, model_validator
from enum import Enum


SportType = Literal["bike", "run", "swim", "other"]
SourceFormat = Literal["zwo", "erg", "mrc", "fit"]


class IntensityClass(str, Enum):
    """Intensity classification carried by every segment"""
    WARMUP = "warmup"
    ACTIVE = "active"
    REST = "rest"
    COOLDOWN = "cooldown"


class Segment(BaseModel):
    """A constant or ramping power band over a contiguous time interval"""
    start_time: int = Field(..., ge=0, description="Seconds from workout start")
    end_time: int = Field(..., ge=0, description="Seconds from workout start")
    duration: int = Field(..., gt=0, description="end_time - start_time")
    power_min: int = Field(..., ge=0, description="Lower bound, % FTP")
    power_max: int = Field(..., ge=0, description="Upper bound, % FTP (may exceed 100)")
    intensity_class: IntensityClass
    name: str
    cadence_min: Optional[int] = Field(default=None, description="RPM")
    cadence_max: Optional[int] = Field(default=None, description="RPM")

    class Config:
        use_enum_values = True

    @model_validator(mode="after")
    def _check_bounds(self) -> "Segment":
        if self.end_time - self.start_time != self.duration:
            raise ValueError(
                f"Segment duration {self.duration} does not match "
                f"{self.start_time}-{self.end_time}"
            )
        if self.power_min > self.power_max:
            raise ValueError(
                f"Segment power_min {self.power_min} exceeds power_max {self.power_max}"
            )
        return self


class ParsedWorkoutResult(BaseModel):
    """Result of parsing a single workout file"""
    name: str = Field(..., description="Workout name/title")
    author: Optional[str] = None
    description: Optional[str] = None
    sport_type: SportType = "bike"
    segments: List[Segment] = Field(default_factory=list)
    total_duration: int = Field(default=0, ge=0, description="Seconds")
    source_format: SourceFormat
    ftp: Optional[int] = Field(default=None, description="FTP used to convert absolute watts")

    @model_validator(mode="after")
    def _check_timeline(self) -> "ParsedWorkoutResult":
        cursor = 0
        for index, segment in enumerate(self.segments):
            if segment.start_time != cursor:
                raise ValueError(
                    f"Segment {index + 1} starts at {segment.start_time}s, expected {cursor}s"
                )
            cursor = segment.end_time
        if self.total_duration != cursor:
            raise ValueError(
                f"total_duration {self.total_duration} does not match timeline end {cursor}"
            )
        return self
