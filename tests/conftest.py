"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import os
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest
from prometheus_client import CollectorRegistry

from logmask.config import get_settings
from logmask.core.metrics import MaskingMetrics
from logmask.core.rules import MaskingRule


SAMPLE_PROPERTIES = r"""
# Passwords in key=value form
PASSWORD=password=\\S+
PASSWORD.REPLACE=(?<==).+

! Bearer tokens, keep the first four characters
BEARER=Bearer [A-Za-z0-9._-]+
BEARER.REPLACE=(?<=Bearer )([A-Za-z0-9]{4})[A-Za-z0-9._-]*
BEARER.REPLACER=$1****

CARD=\\b\\d{4}(?:[ -]?\\d{4}){3}\\b
CARD.REPLACE=\\d(?=(?:[ -]?\\d){4})
CARD.REPLACER=#
"""


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate tests from LOGMASK_* variables and the settings cache."""
    for name in list(os.environ):
        if name.startswith("LOGMASK_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    # The YAML loader exports its values into the environment
    for name in list(os.environ):
        if name.startswith("LOGMASK_"):
            del os.environ[name]
    get_settings.cache_clear()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry so metric names never collide."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MaskingMetrics:
    return MaskingMetrics(registry=registry)


@pytest.fixture
def write_properties(tmp_path: Path) -> Callable[..., Path]:
    """Write properties text into the temp dir and return the file path."""

    def _write(text: str, name: str = "log-masking.properties") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_properties_file(write_properties: Callable[..., Path]) -> Path:
    return write_properties(SAMPLE_PROPERTIES)


@pytest.fixture
def password_rule() -> MaskingRule:
    """Rule masking the value of password=... assignments."""
    return MaskingRule.compile("PASSWORD", r"password=\S+", r"(?<==).+")


@pytest.fixture
def rule_sources() -> Dict[str, str]:
    """Raw properties for a small valid rule set, already unescaped."""
    return {
        "PASSWORD": r"password=\S+",
        "PASSWORD.REPLACE": r"(?<==).+",
        "TOKEN": r"token:\s*\w+",
        "TOKEN.REPLACE": r"(?<=:)\s*\w+",
        "TOKEN.REPLACER": " [REDACTED]",
    }
