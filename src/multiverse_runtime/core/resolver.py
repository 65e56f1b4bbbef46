"""
Worker path resolution
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from multiverse_runtime.core.filesystem import LocalFileSystem
from multiverse_runtime.errors import WorkerNotFound
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedWorker:
    """Directory to run a worker from and the script inside it."""

    worker_path: Path
    script_name: str

    @property
    def script_path(self) -> Path:
        return self.worker_path / self.script_name


class WorkerResolver:
    """
    Turns a worker name into a concrete script location.

    Lookup order, first match wins:

    1. ``{root}/{driver}/{name}/`` directory, running the driver entry point
    2. ``{root}/{name}/`` directory (flat layout), running the driver entry point
    3. ``{root}/{driver}/{name}.{ext}`` single file
    4. ``{root}/{name}.{ext}`` single file

    Names must already be validated; the resolver only checks for presence.
    Nothing is cached since workers may be added or removed between calls.
    """

    def __init__(self, filesystem=None):
        self.filesystem = filesystem or LocalFileSystem()

    @staticmethod
    def candidate_paths(
        workers_root: Union[str, Path],
        driver_name: str,
        worker_name: str,
        extension: str = "py",
    ) -> List[Path]:
        root = Path(workers_root).absolute()
        return [
            root / driver_name / worker_name,
            root / worker_name,
            root / driver_name / f"{worker_name}.{extension}",
            root / f"{worker_name}.{extension}",
        ]

    def resolve(
        self,
        workers_root: Union[str, Path],
        driver_name: str,
        worker_name: str,
        extension: str = "py",
        entry_point: str = "main.py",
    ) -> ResolvedWorker:
        driver_dir, flat_dir, driver_file, flat_file = self.candidate_paths(
            workers_root, driver_name, worker_name, extension
        )

        for directory in (driver_dir, flat_dir):
            if self.filesystem.is_dir(directory):
                logger.debug(f"Resolved worker {worker_name} to directory {directory}")
                return ResolvedWorker(worker_path=directory, script_name=entry_point)

        for script in (driver_file, flat_file):
            if self.filesystem.is_file(script):
                logger.debug(f"Resolved worker {worker_name} to file {script}")
                return ResolvedWorker(worker_path=script.parent, script_name=script.name)

        raise WorkerNotFound(
            worker_name,
            driver_name,
            [str(path) for path in (driver_dir, flat_dir, driver_file, flat_file)],
        )
