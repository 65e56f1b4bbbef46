# Multiverse Runtime - Main package
"""
Multi-language worker runtime

This package lets a Python host run named worker scripts written in other
languages as subprocesses:
- Worker resolution and language drivers (Python, Node.js)
- Optional pre-execution security scan
- JSON payload on stdin, JSON result on stdout, with timeout enforcement
- Command line interface (``multiverse``)
"""

__version__ = "0.1.0"

from multiverse_runtime.core.manager import WorkerManager, WorkerRequest
from multiverse_runtime.core.result import WorkerResult
from multiverse_runtime.errors import (
    DependencyMissing,
    DriverNotConfigured,
    ExecutionError,
    InvalidPayload,
    InvalidWorkerName,
    MultiverseError,
    SecurityViolation,
    WorkerError,
    WorkerNotFound,
    WorkerTimeoutError,
)
from multiverse_runtime.settings import Settings, get_settings

__all__ = [
    "DependencyMissing",
    "DriverNotConfigured",
    "ExecutionError",
    "InvalidPayload",
    "InvalidWorkerName",
    "MultiverseError",
    "SecurityViolation",
    "Settings",
    "WorkerError",
    "WorkerManager",
    "WorkerNotFound",
    "WorkerRequest",
    "WorkerResult",
    "WorkerTimeoutError",
    "get_settings",
]
