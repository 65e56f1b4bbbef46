"""
Language Driver Interface

Defines the contract every supported worker language implements.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from multiverse_runtime.core.filesystem import LocalFileSystem
from multiverse_runtime.core.process import ProcessExecutor
from multiverse_runtime.core.security import SecurityScanner
from multiverse_runtime.errors import ExecutionError, WorkerTimeoutError
from multiverse_runtime.settings import Settings
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)


class LanguageDriver(ABC):
    """
    Strategy for one worker language.

    Knows the worker file extension and entry point, how to build the command
    that runs a resolved worker, and how to provision the shared runtime.
    """

    name: str = ""
    extension: str = ""
    entry_point: str = ""

    def __init__(
        self,
        settings: Settings,
        executor: Optional[ProcessExecutor] = None,
        filesystem: Optional[LocalFileSystem] = None,
    ):
        self.settings = settings
        self.executor = executor or ProcessExecutor()
        self.filesystem = filesystem or LocalFileSystem()

    @property
    def scanner(self) -> SecurityScanner:
        # Built per call so configuration changes apply to the next run
        security = self.settings.security
        return SecurityScanner(
            security.rules,
            enabled=security.scan_for_dangerous_code,
            filesystem=self.filesystem,
        )

    @abstractmethod
    def install_dependencies(self, worker_path: Optional[Union[str, Path]] = None) -> None:
        """
        Provision the shared runtime's packages.

        Raises:
            DependencyMissing: the shared runtime has not been created
            ExecutionError: the package manager failed
        """

    @abstractmethod
    def build_run_command(self, worker_path: Union[str, Path], script_name: str) -> List[str]:
        """
        Return the command vector that runs ``script_name`` inside ``worker_path``.

        Scans the script first when scanning is enabled, so every caller that
        obtains a command has passed the scan.

        Raises:
            SecurityViolation: the script matched a disallowed pattern
        """

    def run_environment(self) -> Optional[Dict[str, str]]:
        """Extra environment variables for the worker process, None for none."""
        return None

    def scan(self, worker_path: Union[str, Path], script_name: str) -> None:
        self.scanner.check(Path(worker_path) / script_name, script_name, driver_name=self.name)

    def run_installer(
        self,
        command: Sequence[str],
        cwd: Optional[Path],
        timeout: Optional[float],
    ) -> None:
        logger.info(f"Installing {self.name} dependencies: {' '.join(command)}")
        outcome = self.executor.execute(command, cwd=cwd, timeout=timeout)

        if outcome.timed_out:
            raise WorkerTimeoutError(
                None,
                self.name,
                timeout,
                elapsed=outcome.duration,
                error_output=outcome.stderr_text,
            )
        if not outcome.successful:
            raise ExecutionError(
                f"Dependency installation for driver [{self.name}] failed",
                driver_name=self.name,
                exit_code=outcome.exit_code if outcome.exit_code is not None else 1,
                error_output=outcome.diagnostic_text,
            )

        logger.info(f"{self.name} dependencies installed in {outcome.duration:.1f}s")
