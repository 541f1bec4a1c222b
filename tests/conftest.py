"""Shared test fixtures for codeprobe tests."""

import shutil
import sys

import pytest

from codeprobe.config import Settings
from codeprobe.engine.facade import TestExecutionService
from codeprobe.utils.metrics import MetricsCollector

MISSING_NODE = 'codeprobe-no-such-node-binary'


def pytest_configure(config):
    config.addinivalue_line('markers', 'node: needs a node binary on PATH')


def pytest_runtest_setup(item):
    if item.get_closest_marker('node') and shutil.which('node') is None:
        pytest.skip('node is not on PATH')


# ── Fixtures ──


@pytest.fixture
def offline_settings():
    """No sandboxes: every language gets a simulated or heuristic strategy."""
    return Settings(sandbox_enabled=False, node_binary=MISSING_NODE, llm_provider='')


@pytest.fixture
def python_sandbox_settings():
    """Real Python sandbox; JavaScript stays simulated."""
    return Settings(
        sandbox_enabled=True,
        python_executable=sys.executable,
        node_binary=MISSING_NODE,
        llm_provider='',
    )


@pytest.fixture
def make_service():
    def _make(settings, evaluator=None, strategies=None):
        return TestExecutionService(
            settings=settings,
            evaluator=evaluator,
            metrics=MetricsCollector(),
            strategies=strategies,
        )
    return _make


@pytest.fixture
def offline_service(make_service, offline_settings):
    return make_service(offline_settings)
