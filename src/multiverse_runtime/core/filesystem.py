"""
Filesystem access used while locating and scanning workers
"""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class LocalFileSystem:
    """
    Thin wrapper over the local filesystem so resolution and scanning can be
    observed or replaced in tests
    """

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def is_file(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def read_text(self, path: PathLike) -> str:
        # Worker sources are scanned as text, undecodable bytes must not abort the scan
        return Path(path).read_text(encoding="utf-8", errors="replace")

    def write_text(self, path: PathLike, text: str) -> None:
        """Write ``text`` to ``path``, creating missing parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
