"""minio-statemap test configuration and fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add src to path for imports
SRC_DIR = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_DIR))

from minio_statemap.trace.event_model import Phase, TraceEvent  # noqa: E402


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def sample_trace_path(fixtures_dir: Path) -> Path:
    """Return the path to sample_trace.json (MinIO trace, two hosts)."""
    return fixtures_dir / "traces" / "sample_trace.json"


@pytest.fixture
def sample_events_path(fixtures_dir: Path) -> Path:
    """Return the path to sample_events.jsonl."""
    return fixtures_dir / "traces" / "sample_events.jsonl"


@pytest.fixture
def orphan_events_path(fixtures_dir: Path) -> Path:
    """Return the path to orphan_events.jsonl (one END without BEGIN)."""
    return fixtures_dir / "traces" / "orphan_events.jsonl"


def begin(entity: str, op: str, ts: int, req: str) -> TraceEvent:
    return TraceEvent(entity, op, Phase.BEGIN, ts, req)


def end(entity: str, op: str, ts: int, req: str) -> TraceEvent:
    return TraceEvent(entity, op, Phase.END, ts, req)
