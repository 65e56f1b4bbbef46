"""
Failure reporting for worker executions.

Only execution-phase failures (timeouts and non-zero exits) are reported;
validation, resolution and security errors go straight to the caller.
"""

from typing import Any, Dict, Protocol

import structlog


class WorkerLogger(Protocol):
    """Port for whatever log sink the host application provides."""

    def error(self, message: str, context: Dict[str, Any]) -> None:
        ...


class StructlogWorkerLogger:
    """
    WorkerLogger writing structured events through structlog
    """

    def __init__(self, channel: str = "multiverse"):
        self.channel = channel
        self._logger = structlog.get_logger(channel)

    def error(self, message: str, context: Dict[str, Any]) -> None:
        self._logger.error(message, **context)
