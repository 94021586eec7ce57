import pytest
from workout_file_ingestor.parsers import (
    _PARSER_REGISTRY,
    UnsupportedFormatError,
    WorkoutFileParser,
    WorkoutParseError,
    get_parser,
    parse_workout,
    register_parser,
    supported_formats,
)
from workout_file_ingestor.parsers.erg_parser import ErgMrcParser
from workout_file_ingestor.parsers.models import ParsedWorkoutResult
from workout_file_ingestor.parsers.zwo_parser import ZwoParser


class _FakeParser(WorkoutFileParser):
    extensions = (".fake",)

    def parse(self, content, filename=None, ftp=None):
        return ParsedWorkoutResult(name=content, source_format="zwo")


@pytest.fixture(autouse=True)
def clean_registry():
    """Remove test parsers from registry after each test."""
    yield
    if _FakeParser in _PARSER_REGISTRY:
        _PARSER_REGISTRY.remove(_FakeParser)


def test_builtin_formats():
    assert supported_formats() == [".zwo", ".erg", ".mrc"]


@pytest.mark.parametrize("filename,parser_class", [
    ("workout.zwo", ZwoParser),
    ("WORKOUT.ZWO", ZwoParser),
    ("ride.erg", ErgMrcParser),
    ("ride.MRC", ErgMrcParser),
])
def test_get_parser_by_extension(filename, parser_class):
    assert isinstance(get_parser(filename), parser_class)


def test_unsupported_extension_lists_formats():
    with pytest.raises(UnsupportedFormatError, match=r"Supported formats: \.zwo, \.erg, \.mrc"):
        get_parser("ride.fit")


def test_unsupported_format_is_a_parse_error():
    with pytest.raises(WorkoutParseError, match="Unsupported file format"):
        parse_workout("content", "notes.txt")


def test_register_and_route_custom_parser():
    register_parser(_FakeParser)

    assert ".fake" in supported_formats()
    assert isinstance(get_parser("plan.fake"), _FakeParser)
    assert parse_workout("From plugin", "plan.fake").name == "From plugin"


def test_duplicate_registration_raises():
    register_parser(_FakeParser)
    with pytest.raises(ValueError, match="already registered"):
        register_parser(_FakeParser)


def test_parse_errors_are_wrapped():
    with pytest.raises(WorkoutParseError, match="Failed to parse workout file: No <workout> section"):
        parse_workout("<invalid>no workout</invalid>", "test.zwo")


def test_same_content_gives_same_result(sap_zwo):
    assert parse_workout(sap_zwo, "a.zwo") == parse_workout(sap_zwo, "a.zwo")
