"""
Static pre-execution scan of worker sources.

Each rule is a literal substring checked against the whole entry-point file.
This is a best-effort deterrent against obviously destructive workers, not a
sandbox: obfuscated or dynamically built calls are not detected.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from multiverse_runtime.core.filesystem import LocalFileSystem
from multiverse_runtime.errors import SecurityViolation
from multiverse_runtime.utils.loggers import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SecurityRule:
    pattern: str
    message: str


@dataclass(frozen=True)
class Violation:
    """A matched rule; only the human-readable message is exposed."""

    message: str


def scan(source_text: str, rules: Iterable[SecurityRule]) -> Optional[Violation]:
    """
    Check ``source_text`` against ``rules`` in order.

    Args:
        source_text: full worker source
        rules: ordered rules, the first match wins

    Returns:
        Violation for the first matching rule, or None when nothing matches
    """
    for rule in rules:
        if rule.pattern and rule.pattern in source_text:
            return Violation(message=rule.message)
    return None


class SecurityScanner:
    """
    Scans worker entry points before they are executed
    """

    def __init__(
        self,
        rules: Sequence[SecurityRule],
        enabled: bool = False,
        filesystem=None,
    ):
        self.rules = tuple(rules)
        self.enabled = enabled
        self.filesystem = filesystem or LocalFileSystem()

    def check(
        self,
        script_path: Union[str, Path],
        script_name: str,
        driver_name: Optional[str] = None,
    ) -> None:
        """
        Scan ``script_path`` and raise SecurityViolation on the first match.

        Does nothing when scanning is disabled or no regular file exists there; the
        file is re-read on every call since workers may change between runs.
        """
        if not self.enabled or not self.filesystem.is_file(script_path):
            return

        violation = scan(self.filesystem.read_text(script_path), self.rules)
        if violation is not None:
            logger.warning(f"Security scan rejected worker script {script_name}")
            raise SecurityViolation(script_name, violation.message, driver_name=driver_name)
