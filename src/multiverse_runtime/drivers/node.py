"""
Node.js worker driver backed by a shared node_modules tree
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from multiverse_runtime.drivers.base import LanguageDriver
from multiverse_runtime.errors import DependencyMissing


class NodeDriver(LanguageDriver):
    name = "node"
    extension = "js"
    entry_point = "main.js"

    @property
    def root_path(self) -> Path:
        return self.settings.resolve_path(self.settings.node.root_path)

    @property
    def modules_path(self) -> Path:
        return self.root_path / "node_modules"

    def install_dependencies(self, worker_path: Optional[Union[str, Path]] = None) -> None:
        package_json = self.root_path / "package.json"
        if not self.filesystem.is_file(package_json):
            raise DependencyMissing(
                self.name,
                str(self.root_path),
                hint=f"Expected a package.json at {package_json}",
            )

        self.run_installer(
            [self.settings.node.npm_binary, "install"],
            cwd=self.root_path,
            timeout=self.settings.node.install_timeout,
        )

    def build_run_command(self, worker_path: Union[str, Path], script_name: str) -> List[str]:
        self.scan(worker_path, script_name)
        return [self.settings.node.binary, str(Path(worker_path) / script_name)]

    def run_environment(self) -> Optional[Dict[str, str]]:
        if self.filesystem.is_dir(self.modules_path):
            return {"NODE_PATH": str(self.modules_path)}
        return None
