"""Verify all modules can be imported without errors."""


def test_core_module_imports():
    """Import core modules to catch bad import paths."""
    import workout_file_ingestor.main
    import workout_file_ingestor.models
    import workout_file_ingestor.config


def test_api_imports():
    """Import API route modules."""
    import workout_file_ingestor.api.routes


def test_parser_imports():
    """Import parser modules."""
    import workout_file_ingestor.parsers
    import workout_file_ingestor.parsers.base
    import workout_file_ingestor.parsers.models
    import workout_file_ingestor.parsers.zwo_parser
    import workout_file_ingestor.parsers.erg_parser
    import workout_file_ingestor.parsers.fit_parser


def test_service_imports():
    """Import service modules."""
    import workout_file_ingestor.services.metrics
    import workout_file_ingestor.services.workout_converter
