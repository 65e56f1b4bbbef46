# -*- coding: utf-8 -*-

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from multiverse_runtime.core.security import SecurityRule


# Upper bound for every timeout, in seconds (one week)
MAX_TIMEOUT = 7 * 24 * 3600.0

DEFAULT_DANGEROUS_PATTERNS: Dict[str, str] = {
    "rm -rf": "destructive deletion (rm -rf) detected",
    "shutil.rmtree": "directory deletion (shutil) detected",
    "mkfs": "disk formatting command detected",
    ":(){:|:&};:": "fork bomb detected",
    "dd if=/dev/zero": "disk wiping command detected",
    "IMPORT_DANGER_TEST": "test rule trigger",
}


class PythonSettings(BaseModel):
    """Shared Python runtime used by every Python worker."""

    root_path: str = "multiverse/python"
    venv_path: str = "multiverse/python/venv"
    requirements_path: str = "multiverse/python/requirements.txt"
    # Used when the shared venv has not been created yet
    interpreter: str = "python3"
    install_timeout: Optional[float] = Field(default=None, gt=0, le=MAX_TIMEOUT)


class NodeSettings(BaseModel):
    """Shared Node.js runtime used by every Node worker."""

    root_path: str = "multiverse/node"
    binary: str = "node"
    npm_binary: str = "npm"
    install_timeout: Optional[float] = Field(default=None, gt=0, le=MAX_TIMEOUT)


class SecuritySettings(BaseModel):
    scan_for_dangerous_code: bool = False
    dangerous_patterns: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DANGEROUS_PATTERNS)
    )

    @property
    def rules(self) -> List[SecurityRule]:
        return [
            SecurityRule(pattern=pattern, message=message)
            for pattern, message in self.dangerous_patterns.items()
        ]


class LoggingSettings(BaseModel):
    enabled: bool = True
    channel: str = "multiverse"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MULTIVERSE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    # Relative paths below are anchored here
    base_path: str = "."
    workers_path: str = "multiverse"

    # Default worker timeout in seconds, None waits forever
    timeout: Optional[float] = Field(default=None, gt=0, le=MAX_TIMEOUT)

    drivers: List[str] = Field(default_factory=lambda: ["python", "node"])

    python: PythonSettings = Field(default_factory=PythonSettings)
    node: NodeSettings = Field(default_factory=NodeSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    def resolve_path(self, value: str) -> Path:
        """Return ``value`` as an absolute path, anchoring relative paths at ``base_path``."""
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = Path(self.base_path).expanduser() / path
        return path.absolute()

    @property
    def workers_root(self) -> Path:
        return self.resolve_path(self.workers_path)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a setting by dotted key, e.g. ``"security.scan_for_dangerous_code"``.

        Args:
            key: attribute name, nested levels separated by dots
            default: returned when any level of the key is missing

        Returns:
            The setting value or ``default``
        """
        value: Any = self
        for part in key.split("."):
            if isinstance(value, BaseModel):
                if part not in type(value).model_fields:
                    return default
                value = getattr(value, part)
            elif isinstance(value, dict):
                if part not in value:
                    return default
                value = value[part]
            else:
                return default
        return value


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS
