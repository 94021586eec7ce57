"""Workout file parser registry, routing uploads to a parser by extension."""
import logging
from typing import List, Optional, Type

from pydantic import ValidationError

from .base import WorkoutFileParser, WorkoutParseError, UnsupportedFormatError
from .models import IntensityClass, ParsedWorkoutResult, Segment

logger = logging.getLogger(__name__)

# Ordered: the first parser whose supports() matches wins
_PARSER_REGISTRY: List[Type[WorkoutFileParser]] = []


def register_parser(parser_class: Type[WorkoutFileParser]) -> None:
    """Register a workout file parser class.

    Raises:
        ValueError: If the parser class is already registered.
    """
    if parser_class in _PARSER_REGISTRY:
        raise ValueError(f"Parser already registered: '{parser_class.__name__}'")
    _PARSER_REGISTRY.append(parser_class)


def supported_formats() -> List[str]:
    """Extensions handled by the registered parsers, in registry order."""
    formats: List[str] = []
    for parser_class in _PARSER_REGISTRY:
        for ext in parser_class.extensions:
            if ext not in formats:
                formats.append(ext)
    return formats


def get_parser(filename: str) -> WorkoutFileParser:
    """Get an instantiated parser for the given filename.

    Raises:
        UnsupportedFormatError: If no registered parser supports the file.
    """
    for parser_class in _PARSER_REGISTRY:
        parser = parser_class()
        if parser.supports(filename):
            return parser
    raise UnsupportedFormatError(
        f"Unsupported file format. Supported formats: {', '.join(supported_formats())}"
    )


def parse_workout(content: str, filename: str, ftp: Optional[int] = None) -> ParsedWorkoutResult:
    """Parse workout file text, picking the parser from the filename.

    ftp is the athlete FTP in watts, used only by files carrying absolute
    watts without an FTP of their own.

    Raises:
        WorkoutParseError: If the format is unsupported or the content is invalid.
    """
    parser = get_parser(filename)
    logger.debug(f"Parsing '{filename}' with {type(parser).__name__}")

    try:
        return parser.parse(content, filename, ftp=ftp)
    except (WorkoutParseError, ValidationError) as e:
        logger.warning(f"Failed to parse workout file '{filename}': {e}")
        raise WorkoutParseError(f"Failed to parse workout file: {e}") from e


__all__ = [
    "register_parser",
    "get_parser",
    "parse_workout",
    "supported_formats",
    "WorkoutFileParser",
    "WorkoutParseError",
    "UnsupportedFormatError",
    "IntensityClass",
    "ParsedWorkoutResult",
    "Segment",
]

# Built-in parsers, in routing order
from .zwo_parser import ZwoParser  # noqa: E402
from .erg_parser import ErgMrcParser  # noqa: E402

register_parser(ZwoParser)
register_parser(ErgMrcParser)
