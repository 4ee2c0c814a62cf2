"""
Pytest configuration: make sure `import cadence` works regardless of
where pytest is invoked, and provide a fresh in‑memory service per test.
"""

import sys
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cadence.registry import EntityRegistry  # noqa: E402
from cadence.service import LifecycleService  # noqa: E402


@pytest.fixture
def registry():
    return EntityRegistry()


@pytest.fixture
def service(registry):
    return LifecycleService(registry)
