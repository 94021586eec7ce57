"""
Test fixtures for workout-file-ingestor.

Provides sample ZWO / ERG / MRC content and a FastAPI TestClient.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Repo root: .../workout-file-ingestor
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import workout_file_ingestor...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from workout_file_ingestor.main import app  # noqa: E402


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> TestClient:
    """Per-test FastAPI TestClient."""
    return TestClient(app)


# ---------------------------------------------------------------------------
# Sample Workout Files
# ---------------------------------------------------------------------------


@pytest.fixture
def sap_zwo() -> str:
    """Three hour endurance ride exported from TrainingPeaks as ZWO."""
    return """<workout_file>
  <author>massimo rosa (via TrainingPeaks)</author>
  <name>SAP</name>
  <description></description>
  <sportType>bike</sportType>
  <tags/>
  <workout>
    <Warmup Duration="2700" PowerHigh="0.55" PowerLow="0.35">
    </Warmup>
    <SteadyState Duration="3600" Power="0.75">
    </SteadyState>
    <SteadyState Duration="2700" Power="0.55">
    </SteadyState>
    <Cooldown Duration="1800" PowerHigh="0.35" PowerLow="0.55">
    </Cooldown>
  </workout>
</workout_file>"""


@pytest.fixture
def sap_erg() -> str:
    """The same ride as an ERG course in absolute watts."""
    return """[COURSE HEADER]
VERSION = 2
UNITS = ENGLISH
DESCRIPTION = SAP
FILE NAME = 2025-12-20_SAP.erg
FTP = 364
MINUTES WATTS
[END COURSE HEADER]
[COURSE DATA]
0	164
45	164
45	273
105	273
105	200
150	200
150	164
180	164
[END COURSE DATA]"""


@pytest.fixture
def sap_mrc() -> str:
    """The same ride as an MRC course in percent of FTP."""
    return """[COURSE HEADER]
VERSION = 2
UNITS = ENGLISH
DESCRIPTION = SAP
FILE NAME = 2025-12-20_SAP.mrc
MINUTES PERCENT
[END COURSE HEADER]
[COURSE DATA]
0	45
45	45
45	75
105	75
105	55
150	55
150	45
180	45
[END COURSE DATA]"""


def _assert_contiguous(result) -> None:
    """Segments start at 0, touch end-to-start and finish at total_duration."""
    segments = result.segments
    assert segments, "expected at least one segment"
    assert segments[0].start_time == 0
    for current, following in zip(segments, segments[1:]):
        assert current.end_time == following.start_time
    for segment in segments:
        assert segment.duration == segment.end_time - segment.start_time
        assert segment.duration > 0
        assert segment.power_min <= segment.power_max
    assert result.total_duration == segments[-1].end_time


@pytest.fixture
def assert_contiguous():
    """Timeline invariant check shared by the parser tests."""
    return _assert_contiguous
