"""
Subprocess execution with timeout enforcement
"""

import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import psutil

from multiverse_runtime.errors import ExecutionError
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessOutcome:
    """
    Captured result of one child process

    Attributes:
        stdout: raw standard output
        stderr: raw standard error
        exit_code: process return code, not meaningful when timed_out
        timed_out: the process was killed after exceeding its deadline
        duration: wall-clock seconds between spawn and exit
    """

    stdout: bytes
    stderr: bytes
    exit_code: Optional[int]
    timed_out: bool = False
    duration: float = 0.0

    @property
    def successful(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    @property
    def diagnostic_text(self) -> str:
        """stderr, or stdout when the process reported its failure there."""
        return self.stderr_text or self.stdout_text


def kill_process_tree(pid: int, timeout: float = 3.0) -> List[int]:
    """
    Kill ``pid`` together with all of its descendants.

    Returns:
        PIDs that were signalled
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return []

    # Children run in their own session, so the process group catches
    # descendants that were already re-parented
    if hasattr(os, "killpg"):
        try:
            os.killpg(pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass

    killed = []
    for proc in [parent, *children]:
        try:
            proc.kill()
            killed.append(proc.pid)
        except psutil.NoSuchProcess:
            continue
    psutil.wait_procs(children, timeout=timeout)
    return killed


class ProcessExecutor:
    """
    Runs one command to completion, feeding stdin and capturing output
    """

    def execute(
        self,
        argv: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None,
        stdin: Optional[Union[bytes, str]] = None,
        timeout: Optional[float] = None,
    ) -> ProcessOutcome:
        """
        Execute ``argv`` and wait for it to exit.

        Args:
            argv: command vector, argv[0] is the executable
            cwd: working directory for the child
            env: full child environment, None inherits the current one
            stdin: bytes written to the child's stdin before it is awaited
            timeout: seconds before the process tree is killed, None waits forever

        Returns:
            ProcessOutcome; non-zero exit codes and timeouts are reported, not raised

        Raises:
            ExecutionError: the process could not be spawned (exit_code 1)
        """
        if isinstance(stdin, str):
            stdin = stdin.encode("utf-8")

        command = [str(part) for part in argv]
        logger.debug(f"Spawning {command} in {cwd} (timeout={timeout})")

        start_time = time.perf_counter()
        try:
            process = subprocess.Popen(
                command,
                cwd=str(cwd) if cwd is not None else None,
                env=env,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise ExecutionError(
                f"Failed to start process {command[0] if command else '<empty>'}: {e}",
                exit_code=1,
                error_output=str(e),
            ) from e

        try:
            stdout, stderr = process.communicate(input=stdin, timeout=timeout)
        except subprocess.TimeoutExpired:
            killed = kill_process_tree(process.pid)
            stdout, stderr = process.communicate()
            duration = time.perf_counter() - start_time
            logger.warning(
                f"Process {process.pid} exceeded {timeout}s and was killed "
                f"(signalled {len(killed)} process(es))"
            )
            return ProcessOutcome(
                stdout=stdout or b"",
                stderr=stderr or b"",
                exit_code=process.returncode,
                timed_out=True,
                duration=duration,
            )
        except BaseException:
            kill_process_tree(process.pid)
            process.wait()
            raise

        duration = time.perf_counter() - start_time
        logger.debug(
            f"Process {process.pid} exited with {process.returncode} after {duration * 1000:.2f}ms"
        )
        return ProcessOutcome(
            stdout=stdout or b"",
            stderr=stderr or b"",
            exit_code=process.returncode,
            timed_out=False,
            duration=duration,
        )


def find_processes(path_prefixes: Iterable[Union[str, Path]]) -> List[psutil.Process]:
    """
    List running processes with a command-line argument equal to, or nested
    under, one of ``path_prefixes``.

    The current process is never included.
    """
    prefixes = [str(prefix).rstrip(os.sep) for prefix in path_prefixes]
    current = os.getpid()
    matches = []
    for proc in psutil.process_iter(["pid", "cmdline"]):
        if proc.info["pid"] == current:
            continue
        cmdline = proc.info.get("cmdline") or []
        if any(
            arg == prefix or arg.startswith(prefix + os.sep)
            for arg in cmdline
            for prefix in prefixes
        ):
            matches.append(proc)
    return matches
