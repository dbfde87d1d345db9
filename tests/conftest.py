"""
Pytest configuration and fixtures for capibara tests.
"""

from __future__ import annotations

import os
import textwrap
from pathlib import Path
from typing import Dict, Generator
from unittest.mock import MagicMock, patch

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from capibara.config import reset_config
from capibara.graph.builder import build
from capibara.graph.model import CapabilityGraph
from capibara.otel import set_meter_provider
from capibara.registry.loader import RegistryLoader
from capibara.registry.schema import CapabilityRecord


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def test_env() -> Dict[str, str]:
    """Test environment variables."""
    return {
        "CAPIBARA_ENVIRONMENT": "development",
        "CAPIBARA_LOG_LEVEL": "debug",
    }


@pytest.fixture(autouse=True)
def set_test_env(test_env: Dict[str, str]) -> Generator[None, None, None]:
    """Set test environment variables and reset cached state for each test."""
    original = {}
    for key, value in test_env.items():
        original[key] = os.environ.get(key)
        os.environ[key] = value
    os.environ.pop("CAPIBARA_EXPOSE_INTROSPECTION", None)
    reset_config()
    RegistryLoader.clear_cache()

    yield

    reset_config()
    RegistryLoader.clear_cache()
    for key, value in original.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


# ============================================================================
# Registry Fixtures
# ============================================================================


@pytest.fixture
def feed_records() -> list[CapabilityRecord]:
    """Two-step feed pagination lineage."""
    return [
        CapabilityRecord(name="feed.page.v1", owner="feed-team", introduced_in="1.0.0"),
        CapabilityRecord(
            name="feed.cursor.v2",
            owner="feed-team",
            introduced_in="1.4.0",
            replaces="feed.page.v1",
        ),
    ]


@pytest.fixture
def feed_graph(feed_records: list[CapabilityRecord]) -> CapabilityGraph:
    return build(feed_records)


@pytest.fixture
def three_step_records() -> list[CapabilityRecord]:
    """Lineage v1 -> v2 -> v3 plus an unrelated single-node feature."""
    return [
        CapabilityRecord(name="search.v1", introduced_in="1.0.0"),
        CapabilityRecord(name="search.v2", introduced_in="1.1.0", replaces="search.v1"),
        CapabilityRecord(name="search.v3", introduced_in="2.0.0", replaces="search.v2"),
        CapabilityRecord(name="profile.avatar.v1", introduced_in="1.2.0"),
    ]


@pytest.fixture
def three_step_graph(three_step_records: list[CapabilityRecord]) -> CapabilityGraph:
    return build(three_step_records)


REGISTRY_YAML = textwrap.dedent("""\
    schema_version: "0.1.0"
    contract_type: capability_registry
    capabilities:
      - name: feed.page.v1
        owner: feed-team
        introducedIn: "1.0.0"
      - name: feed.cursor.v2
        owner: feed-team
        introducedIn: "1.4.0"
        replaces: feed.page.v1
""")


@pytest.fixture
def registry_file(tmp_path: Path) -> Path:
    path = tmp_path / "capabilities.yaml"
    path.write_text(REGISTRY_YAML)
    return path


# ============================================================================
# OTel Fixtures
# ============================================================================


@pytest.fixture
def mock_span() -> MagicMock:
    """Create a mock OTel span that is recording."""
    span = MagicMock()
    span.is_recording.return_value = True
    return span


@pytest.fixture
def mock_otel(mock_span: MagicMock) -> Generator[MagicMock, None, None]:
    """Patch OTel to return our mock span."""
    with patch("capibara.otel.otel_trace") as mock_trace:
        mock_trace.get_current_span.return_value = mock_span
        yield mock_span


@pytest.fixture
def metric_reader() -> Generator[InMemoryMetricReader, None, None]:
    """Bind capibara counters to an in-memory SDK meter provider."""
    reader = InMemoryMetricReader()
    set_meter_provider(MeterProvider(metric_readers=[reader]))
    yield reader
    set_meter_provider(None)
