from pathlib import Path
from unittest.mock import Mock

import pytest

from multiverse_runtime.core.filesystem import LocalFileSystem
from multiverse_runtime.core.resolver import ResolvedWorker, WorkerResolver
from multiverse_runtime.errors import WorkerNotFound


@pytest.fixture
def resolver():
    return WorkerResolver()


def make(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.mark.unit
class TestResolutionOrder:
    """Each earlier location shadows all later ones"""

    def test_driver_directory_first(self, resolver, tmp_path):
        (tmp_path / "python" / "job").mkdir(parents=True)
        (tmp_path / "job").mkdir()
        make(tmp_path / "python" / "job.py")
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved == ResolvedWorker(tmp_path / "python" / "job", "main.py")

    def test_flat_directory_second(self, resolver, tmp_path):
        (tmp_path / "job").mkdir()
        make(tmp_path / "python" / "job.py")
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved.worker_path == tmp_path / "job"
        assert resolved.script_name == "main.py"

    def test_driver_file_third(self, resolver, tmp_path):
        make(tmp_path / "python" / "job.py")
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved.worker_path == tmp_path / "python"
        assert resolved.script_name == "job.py"
        assert resolved.script_path == tmp_path / "python" / "job.py"

    def test_flat_file_last(self, resolver, tmp_path):
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved.worker_path == tmp_path
        assert resolved.script_name == "job.py"

    def test_directory_without_entry_point_still_wins(self, resolver, tmp_path):
        # the directory is selected even if main.py is missing; running it fails later
        (tmp_path / "python" / "job").mkdir(parents=True)
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved.script_path == tmp_path / "python" / "job" / "main.py"

    def test_file_named_like_directory_is_ignored(self, resolver, tmp_path):
        # a plain file at the directory location does not count as a directory
        make(tmp_path / "python" / "job")
        make(tmp_path / "job.py")

        resolved = resolver.resolve(tmp_path, "python", "job")
        assert resolved.script_path == tmp_path / "job.py"

    def test_extension_and_entry_point(self, resolver, tmp_path):
        make(tmp_path / "node" / "job.js")
        resolved = resolver.resolve(tmp_path, "node", "job", extension="js", entry_point="main.js")
        assert resolved.script_path == tmp_path / "node" / "job.js"

        (tmp_path / "node" / "task").mkdir()
        resolved = resolver.resolve(tmp_path, "node", "task", extension="js", entry_point="main.js")
        assert resolved.script_name == "main.js"


@pytest.mark.unit
class TestNotFound:
    def test_lists_all_four_paths(self, resolver, tmp_path):
        with pytest.raises(WorkerNotFound) as exc_info:
            resolver.resolve(tmp_path, "python", "missing")

        error = exc_info.value
        assert error.worker_name == "missing"
        assert error.driver_name == "python"
        assert error.checked_paths == [
            str(tmp_path / "python" / "missing"),
            str(tmp_path / "missing"),
            str(tmp_path / "python" / "missing.py"),
            str(tmp_path / "missing.py"),
        ]
        assert "missing" in error.message

    def test_relative_root_is_made_absolute(self, resolver, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        paths = WorkerResolver.candidate_paths("workers", "python", "job")
        assert all(path.is_absolute() for path in paths)
        assert paths[0] == tmp_path / "workers" / "python" / "job"

    def test_uses_injected_filesystem(self, tmp_path):
        filesystem = Mock(spec=LocalFileSystem)
        filesystem.is_dir.return_value = False
        filesystem.is_file.return_value = False

        with pytest.raises(WorkerNotFound):
            WorkerResolver(filesystem).resolve(tmp_path, "python", "job")

        assert filesystem.is_dir.call_count == 2
        assert filesystem.is_file.call_count == 2

    def test_nothing_is_cached(self, resolver, tmp_path):
        with pytest.raises(WorkerNotFound):
            resolver.resolve(tmp_path, "python", "late")

        make(tmp_path / "late.py")
        assert resolver.resolve(tmp_path, "python", "late").script_name == "late.py"
