import json
from enum import IntEnum
from typing import Any, Dict, List, Optional


class ExitCode(IntEnum):
    """
    Process exit statuses used by the CLI for each failure kind
    """

    SUCCESS = 0
    EXECUTION_FAILED = 1
    INVALID_INPUT = 2
    SECURITY_VIOLATION = 3
    NOT_FOUND = 4
    DRIVER_ERROR = 5
    TIMEOUT = 124

    @classmethod
    def get_description(cls, code: int) -> str:
        descriptions = {
            cls.SUCCESS: "worker finished successfully",
            cls.EXECUTION_FAILED: "worker exited with a non-zero status",
            cls.INVALID_INPUT: "invalid worker name or payload",
            cls.SECURITY_VIOLATION: "worker source failed the security scan",
            cls.NOT_FOUND: "worker could not be located",
            cls.DRIVER_ERROR: "language driver missing or not provisioned",
            cls.TIMEOUT: "worker exceeded its time limit",
        }
        return descriptions.get(code, "unknown error")


class MultiverseError(Exception):
    """Base error with message, detail and arbitrary extra attributes."""

    exit_status = ExitCode.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        **kwargs: Any
    ):
        self.message = message
        self.detail = detail
        self.extra = kwargs
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format."""
        error_dict = {
            "error": type(self).__name__,
            "message": self.message,
            "detail": self.detail,
        }
        error_dict.update(self.extra)
        return {k: v for k, v in error_dict.items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\nDetail: {self.detail}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message='{self.message}', detail='{self.detail}', extra={self.extra})"


class WorkerError(MultiverseError):
    """
    Failure of a single worker invocation.

    Carries the worker and driver names plus whatever diagnostic output the
    failing stage produced.
    """

    def __init__(
        self,
        message: str,
        worker_name: Optional[str] = None,
        driver_name: Optional[str] = None,
        exit_code: int = 0,
        error_output: Optional[str] = None,
        detail: Optional[str] = None,
        **kwargs: Any
    ):
        super().__init__(
            message,
            detail,
            worker=worker_name,
            driver=driver_name,
            **kwargs
        )
        self.worker_name = worker_name
        self.driver_name = driver_name
        self.exit_code = exit_code
        self.error_output = error_output


class InvalidWorkerName(WorkerError, ValueError):
    exit_status = ExitCode.INVALID_INPUT

    def __init__(self, worker_name: Any):
        super().__init__(
            f"Invalid worker name [{worker_name}]. Only alphanumeric characters, "
            "dashes, and underscores are allowed.",
            worker_name=str(worker_name),
        )


class WorkerNotFound(WorkerError):
    exit_status = ExitCode.NOT_FOUND

    def __init__(self, worker_name: str, driver_name: str, checked_paths: List[str]):
        super().__init__(
            f"Worker not found: {worker_name} (checked {', '.join(checked_paths)})",
            worker_name=worker_name,
            driver_name=driver_name,
            checked_paths=checked_paths,
        )
        self.checked_paths = list(checked_paths)


class DriverNotConfigured(WorkerError):
    exit_status = ExitCode.DRIVER_ERROR

    def __init__(self, driver_name: Any, detail: Optional[str] = None):
        super().__init__(
            f"Driver [{driver_name}] not configured or could not be constructed.",
            driver_name=str(driver_name),
            detail=detail,
        )


class DependencyMissing(WorkerError):
    exit_status = ExitCode.DRIVER_ERROR

    def __init__(self, driver_name: str, runtime_path: str, hint: Optional[str] = None):
        super().__init__(
            f"Shared {driver_name} runtime not found at: {runtime_path}",
            driver_name=driver_name,
            detail=hint,
            runtime_path=runtime_path,
        )
        self.runtime_path = runtime_path


class SecurityViolation(WorkerError):
    """Raised before execution when a worker's source matches a disallowed pattern."""

    exit_status = ExitCode.SECURITY_VIOLATION

    def __init__(self, script_name: str, rule_message: str, driver_name: Optional[str] = None):
        super().__init__(
            f"Security Violation: Dangerous code detected in worker [{script_name}]: {rule_message}",
            driver_name=driver_name,
            script=script_name,
        )
        self.script_name = script_name
        self.rule_message = rule_message


class InvalidPayload(WorkerError, ValueError):
    exit_status = ExitCode.INVALID_INPUT


class ExecutionError(WorkerError):
    """The worker process exited non-zero or could not be spawned."""

    exit_status = ExitCode.EXECUTION_FAILED


class WorkerTimeoutError(WorkerError, TimeoutError):
    exit_status = ExitCode.TIMEOUT

    def __init__(
        self,
        worker_name: Optional[str],
        driver_name: Optional[str],
        timeout: float,
        elapsed: Optional[float] = None,
        error_output: Optional[str] = None,
    ):
        super().__init__(
            f"Worker [{worker_name}] timed out after {timeout} seconds.",
            worker_name=worker_name,
            driver_name=driver_name,
            exit_code=ExitCode.TIMEOUT,
            error_output=error_output,
            timeout=timeout,
            elapsed=elapsed,
        )
        self.timeout = timeout
        self.elapsed = elapsed
