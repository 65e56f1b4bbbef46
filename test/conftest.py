"""Pytest configuration and fixtures."""

import os
import sys
import textwrap
from pathlib import Path
from unittest.mock import Mock

import pytest

from multiverse_runtime.core.process import ProcessExecutor, ProcessOutcome
from multiverse_runtime.settings import Settings


ECHO_WORKER = """
import json
import sys

payload = json.load(sys.stdin)
print(json.dumps({"status": "success", "message": "echo", "data": payload}))
"""


def pytest_configure(config):
    """Pytest 配置钩子"""
    config.addinivalue_line("markers", "unit: fast tests without child processes")
    config.addinivalue_line("markers", "integration: tests that spawn real worker processes")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host MULTIVERSE_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("MULTIVERSE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def workers_root(tmp_path) -> Path:
    root = tmp_path / "multiverse"
    (root / "python").mkdir(parents=True)
    return root


@pytest.fixture
def settings(tmp_path, workers_root) -> Settings:
    """Settings rooted in tmp_path; Python workers run with the test interpreter."""
    return Settings(
        _env_file=None,
        base_path=str(tmp_path),
        workers_path=str(workers_root),
        python={"interpreter": sys.executable},
    )


@pytest.fixture
def write_worker(workers_root):
    """Write ``source`` to ``workers_root / relative`` and return the path."""

    def _write(relative: str, source: str) -> Path:
        path = workers_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def echo_worker(write_worker) -> Path:
    return write_worker("python/echo/main.py", ECHO_WORKER)


@pytest.fixture
def failure_logger():
    return Mock()


@pytest.fixture
def mock_executor():
    """Executor spy that reports a successful run printing an empty JSON object."""
    executor = Mock(spec=ProcessExecutor)
    executor.execute.return_value = ProcessOutcome(stdout=b"{}", stderr=b"", exit_code=0, duration=0.01)
    return executor
