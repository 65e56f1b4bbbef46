"""
Python worker driver backed by one shared virtual environment
"""

from pathlib import Path
from typing import List, Optional, Union

from multiverse_runtime.drivers.base import LanguageDriver
from multiverse_runtime.errors import DependencyMissing
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)

REQUIREMENTS_HEADER = "# Shared Python Requirements\n"


class PythonDriver(LanguageDriver):
    name = "python"
    extension = "py"
    entry_point = "main.py"

    @property
    def root_path(self) -> Path:
        return self.settings.resolve_path(self.settings.python.root_path)

    @property
    def venv_path(self) -> Path:
        return self.settings.resolve_path(self.settings.python.venv_path)

    @property
    def requirements_path(self) -> Path:
        return self.settings.resolve_path(self.settings.python.requirements_path)

    @property
    def venv_python(self) -> Path:
        return self.venv_path / "bin" / "python"

    def install_dependencies(self, worker_path: Optional[Union[str, Path]] = None) -> None:
        # Workers share one environment, so worker_path does not change what is installed
        if not self.filesystem.is_dir(self.venv_path):
            raise DependencyMissing(
                self.name,
                str(self.venv_path),
                hint=f"Create it first: python3 -m venv {self.venv_path}",
            )

        requirements = self.requirements_path
        if not self.filesystem.exists(requirements):
            self.filesystem.write_text(requirements, REQUIREMENTS_HEADER)
            logger.info(f"Created empty requirements file at {requirements}")

        pip = self.venv_path / "bin" / "pip"
        cwd = self.root_path if self.filesystem.is_dir(self.root_path) else None
        self.run_installer(
            [str(pip), "install", "-r", str(requirements)],
            cwd=cwd,
            timeout=self.settings.python.install_timeout,
        )

    def build_run_command(self, worker_path: Union[str, Path], script_name: str) -> List[str]:
        script = Path(worker_path) / script_name
        self.scan(worker_path, script_name)

        # A worker's own venv is ignored, the shared one always wins
        if self.filesystem.exists(self.venv_python):
            return [str(self.venv_python), str(script)]

        logger.debug(
            f"Shared venv missing at {self.venv_path}, falling back to {self.settings.python.interpreter}"
        )
        return [self.settings.python.interpreter, str(script)]
