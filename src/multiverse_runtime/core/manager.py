"""
Worker invocation pipeline.

``WorkerManager.run`` validates the worker name, picks the language driver,
resolves the worker on disk, builds (and security-scans) the command, runs it
with the JSON payload on stdin, and turns stdout into a ``WorkerResult``.
"""

import json
import os
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from multiverse_runtime.core.filesystem import LocalFileSystem
from multiverse_runtime.core.process import ProcessExecutor, ProcessOutcome
from multiverse_runtime.core.reporting import StructlogWorkerLogger, WorkerLogger
from multiverse_runtime.core.resolver import ResolvedWorker, WorkerResolver
from multiverse_runtime.core.result import WorkerResult
from multiverse_runtime.drivers import DRIVER_REGISTRY, DriverDescriptor, LanguageDriver
from multiverse_runtime.errors import (
    DriverNotConfigured,
    ExecutionError,
    InvalidPayload,
    InvalidWorkerName,
    WorkerError,
    WorkerTimeoutError,
)
from multiverse_runtime.settings import MAX_TIMEOUT, Settings, get_settings
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)

WORKER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
DEFAULT_DRIVER = "python"


def validate_worker_name(worker_name: Any) -> str:
    """
    Return ``worker_name`` unchanged if it only holds letters, digits, ``-`` and ``_``.

    Raises:
        InvalidWorkerName: anything else, including non-strings and ""
    """
    # fullmatch, since "$" would also accept a trailing newline
    if not isinstance(worker_name, str) or not WORKER_NAME_PATTERN.fullmatch(worker_name):
        raise InvalidWorkerName(worker_name)
    return worker_name


@dataclass(frozen=True)
class WorkerRequest:
    """One invocation: worker name, payload, and the options read from it."""

    worker_name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    driver_name: str = DEFAULT_DRIVER
    timeout_override: Any = None

    @classmethod
    def from_payload(cls, worker_name: str, payload: Optional[Mapping[str, Any]] = None) -> "WorkerRequest":
        """
        Build a request; ``payload["driver"]`` selects the driver and
        ``payload["_timeout"]`` overrides the configured timeout. Both keys are
        still sent to the worker.
        """
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise InvalidPayload(
                f"Payload for worker [{worker_name}] must be a JSON object, got {type(payload).__name__}",
                worker_name=str(worker_name),
            )
        payload = dict(payload)
        return cls(
            worker_name=worker_name,
            payload=payload,
            driver_name=payload.get("driver", DEFAULT_DRIVER),
            timeout_override=payload.get("_timeout"),
        )


class WorkerManager:
    """
    Runs workers through their language drivers.

    Drivers are built on first use and cached for the manager's lifetime; the
    cache is shared safely between threads. Everything else (resolution,
    scanning, the process itself) happens per call.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        executor: Optional[ProcessExecutor] = None,
        logger: Optional[WorkerLogger] = None,
        filesystem: Optional[LocalFileSystem] = None,
        drivers: Optional[Mapping[str, DriverDescriptor]] = None,
    ):
        self.settings = settings or get_settings()
        self.executor = executor or ProcessExecutor()
        self.filesystem = filesystem or LocalFileSystem()
        self.failure_logger = logger or StructlogWorkerLogger(self.settings.logging.channel)
        self.registry = DRIVER_REGISTRY if drivers is None else drivers
        self.resolver = WorkerResolver(self.filesystem)

        self._drivers: Dict[str, LanguageDriver] = {}
        self._drivers_lock = threading.Lock()

    def driver(self, name: Any) -> LanguageDriver:
        """
        Return the cached driver for ``name``, constructing it on first use.

        Raises:
            DriverNotConfigured: ``name`` is not enabled, not registered, or its
                factory failed
        """
        # Lock-free fast path; dict reads are atomic
        driver = self._drivers.get(name) if isinstance(name, str) else None
        if driver is not None:
            return driver

        with self._drivers_lock:
            if not isinstance(name, str):
                raise DriverNotConfigured(name, detail="driver name must be a string")
            driver = self._drivers.get(name)
            if driver is not None:
                return driver

            if name not in self.settings.drivers:
                raise DriverNotConfigured(name, detail="driver is not enabled in settings")
            descriptor = self.registry.get(name)
            if descriptor is None:
                raise DriverNotConfigured(name, detail="no driver registered under this name")

            try:
                driver = descriptor.factory(self.settings, self.executor, self.filesystem)
            except Exception as e:
                raise DriverNotConfigured(name, detail=str(e)) from e

            logger.debug(f"Constructed {type(driver).__name__} for driver {name}")
            self._drivers[name] = driver
            return driver

    def resolve(self, worker_name: Any, driver_name: Any = DEFAULT_DRIVER) -> ResolvedWorker:
        """Validate ``worker_name`` and locate it without running anything."""
        validate_worker_name(worker_name)
        driver = self.driver(driver_name)
        return self.resolver.resolve(
            self.settings.workers_root,
            driver.name,
            worker_name,
            extension=driver.extension,
            entry_point=driver.entry_point,
        )

    def run(self, worker_name: Any, payload: Optional[Mapping[str, Any]] = None) -> WorkerResult:
        """
        Run a worker and return its result.

        Args:
            worker_name: letters, digits, ``-`` and ``_`` only
            payload: JSON object sent on stdin; ``driver`` and ``_timeout``
                keys also select the driver and override the timeout

        Raises:
            InvalidWorkerName, InvalidPayload, DriverNotConfigured,
            WorkerNotFound, SecurityViolation, WorkerTimeoutError, ExecutionError
        """
        # Validated before the payload is even looked at
        validate_worker_name(worker_name)
        return self.execute(WorkerRequest.from_payload(worker_name, payload))

    def execute(self, request: WorkerRequest) -> WorkerResult:
        worker_name = validate_worker_name(request.worker_name)
        driver = self.driver(request.driver_name)

        resolved = self.resolver.resolve(
            self.settings.workers_root,
            driver.name,
            worker_name,
            extension=driver.extension,
            entry_point=driver.entry_point,
        )
        command = driver.build_run_command(resolved.worker_path, resolved.script_name)
        logger.debug(f"Worker {worker_name} command: {command} (cwd={resolved.worker_path})")

        stdin = self._encode_payload(request)
        timeout = self._effective_timeout(request)

        env = None
        extra_env = driver.run_environment()
        if extra_env:
            env = {**os.environ, **extra_env}

        try:
            outcome = self.executor.execute(
                command,
                cwd=resolved.worker_path,
                env=env,
                stdin=stdin,
                timeout=timeout,
            )
        except ExecutionError as e:
            error = ExecutionError(
                f"Worker [{worker_name}] could not be started: {e.message}",
                worker_name=worker_name,
                driver_name=driver.name,
                exit_code=1,
                error_output=e.error_output,
            )
            self._report_failure(request, driver, error, e.error_output or e.message)
            raise error from e

        if outcome.timed_out:
            error = WorkerTimeoutError(
                worker_name,
                driver.name,
                timeout,
                elapsed=outcome.duration,
                error_output=outcome.stderr_text,
            )
            self._report_failure(request, driver, error, error.message)
            raise error

        if not outcome.successful:
            error = self._execution_failure(worker_name, driver, outcome)
            self._report_failure(request, driver, error, error.error_output)
            raise error

        logger.info(f"Worker {worker_name} ({driver.name}) finished in {outcome.duration * 1000:.2f}ms")

        result = WorkerResult.parse(outcome.stdout_text)
        if not result.parsed:
            logger.warning(f"Worker {worker_name} did not print a JSON object, returning raw output")
        return result

    def _encode_payload(self, request: WorkerRequest) -> bytes:
        try:
            text = json.dumps(request.payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
            # Lone surrogates survive dumps but not the UTF-8 encode
            return text.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise InvalidPayload(
                f"Payload for worker [{request.worker_name}] is not JSON serializable: {e}",
                worker_name=request.worker_name,
                driver_name=request.driver_name,
            ) from e

    def _effective_timeout(self, request: WorkerRequest) -> Optional[float]:
        """
        ``_timeout`` from the payload wins over ``settings.timeout``; 0 means
        no limit. Overrides above ``MAX_TIMEOUT`` are rejected.
        """
        override = request.timeout_override
        if override is None:
            return self.settings.timeout

        valid = (
            isinstance(override, (int, float))
            and not isinstance(override, bool)
            and 0 <= override <= MAX_TIMEOUT
        )
        if not valid:
            raise InvalidPayload(
                f"Invalid _timeout [{override!r}] for worker [{request.worker_name}], "
                f"expected a number of seconds between 0 and {MAX_TIMEOUT:g}",
                worker_name=request.worker_name,
                driver_name=request.driver_name,
            )
        return float(override) if override > 0 else None

    @staticmethod
    def _execution_failure(worker_name: str, driver: LanguageDriver, outcome: ProcessOutcome) -> ExecutionError:
        diagnostic = outcome.diagnostic_text
        return ExecutionError(
            f"Worker [{worker_name}] failed with exit code {outcome.exit_code}: {diagnostic.strip()}",
            worker_name=worker_name,
            driver_name=driver.name,
            exit_code=outcome.exit_code,
            error_output=diagnostic,
        )

    def _report_failure(
        self,
        request: WorkerRequest,
        driver: LanguageDriver,
        error: WorkerError,
        detail: Optional[str],
    ) -> None:
        if not self.settings.logging.enabled:
            return
        self.failure_logger.error(
            f"Multiverse Worker Failed: {request.worker_name}",
            {
                "worker": request.worker_name,
                "driver": driver.name,
                "payload": request.payload,
                "error": detail,
                "exception": repr(error),
            },
        )
