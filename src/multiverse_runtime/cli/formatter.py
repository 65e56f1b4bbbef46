"""
Result formatting utilities for CLI output
"""

import json
import sys
from datetime import datetime
from typing import Any, Dict, Optional

import yaml

from multiverse_runtime.core.result import WorkerResult
from multiverse_runtime.errors import MultiverseError


class ResultFormatter:
    """
    Format worker results and errors for different output types
    """

    def __init__(
        self,
        format: str = "pretty",
        verbose: bool = False,
        use_colors: bool = True
    ):
        self.format = format
        self.verbose = verbose
        self.use_colors = use_colors and self._supports_color()

        # Color codes for pretty output
        if self.use_colors:
            self.colors = {
                'reset': '\033[0m',
                'red': '\033[91m',
                'green': '\033[92m',
                'yellow': '\033[93m',
                'blue': '\033[94m',
                'magenta': '\033[95m',
                'cyan': '\033[96m',
                'dim': '\033[2m',
            }
        else:
            self.colors = {k: '' for k in ['reset', 'red', 'green', 'yellow', 'blue', 'magenta', 'cyan', 'dim']}

    def _supports_color(self) -> bool:
        """Check if terminal supports colors"""
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()

    def _colorize(self, text: str, color: str) -> str:
        return f"{self.colors[color]}{text}{self.colors['reset']}"

    def format_result(self, worker: str, result: WorkerResult, duration: Optional[float] = None) -> str:
        """
        Format a finished worker run

        Args:
            worker: worker name
            result: parsed worker result
            duration: wall-clock seconds, shown when given

        Returns:
            Formatted string
        """
        if self.format == "json":
            return self._dump_json(self._result_data(worker, result, duration))
        elif self.format == "yaml":
            return self._dump_yaml(self._result_data(worker, result, duration))
        else:
            return self._format_pretty(worker, result, duration)

    def format_error(self, worker: Optional[str], error: MultiverseError) -> str:
        """Format a classified failure; the pretty form is a one-line message plus diagnostics."""
        if self.format in ("json", "yaml"):
            data: Dict[str, Any] = {"worker": worker, "success": False}
            data.update(error.to_dict())
            error_output = getattr(error, "error_output", None)
            if error_output:
                data["error_output"] = error_output
            if self.format == "json":
                return self._dump_json(data)
            return self._dump_yaml(data)

        output = [self._colorize(f"❌ {error.message}", "red")]
        if error.detail:
            output.append(f"   {error.detail}")
        error_output = getattr(error, "error_output", None)
        if error_output and error_output.strip() not in error.message:
            output.append("")
            output.append(self._colorize("📥 STDERR:", "yellow"))
            output.append(self._colorize("-" * 40, "dim"))
            output.append(error_output.rstrip())
        return "\n".join(output)

    def _format_pretty(self, worker: str, result: WorkerResult, duration: Optional[float]) -> str:
        """Format result in pretty human-readable format"""
        output = []

        if result.is_success():
            header = self._colorize(f"✅ Worker {worker} succeeded", "green")
        else:
            header = self._colorize(f"⚠️  Worker {worker} finished with status: {result.status}", "yellow")
        output.append(header)
        output.append("")

        if result.message:
            output.append(self._colorize("💬 MESSAGE:", "blue"))
            output.append(self._colorize("-" * 40, "dim"))
            output.append(str(result.message))
            output.append("")

        if result.parsed:
            output.append(self._colorize("📄 DATA:", "magenta"))
            output.append(self._colorize("-" * 40, "dim"))
            if isinstance(result.data, (dict, list, tuple)):
                output.append(json.dumps(result.data, indent=2, ensure_ascii=False, default=str))
            else:
                output.append(str(result.data))
        else:
            output.append(self._colorize("📤 RAW OUTPUT:", "blue"))
            output.append(self._colorize("-" * 40, "dim"))
            raw_output = (result.raw_output or "").rstrip()
            output.append(raw_output if raw_output else "(empty)")
        output.append("")

        if duration is not None:
            output.append(f"Duration: {self._colorize(f'{duration * 1000:.2f}', 'yellow')} ms")

        if self.verbose:
            output.append(f"Timestamp: {datetime.now().isoformat()}")
            output.append(f"Parsed: {result.parsed}")

        return "\n".join(output)

    def _result_data(self, worker: str, result: WorkerResult, duration: Optional[float]) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "worker": worker,
            "success": True,
            "result": result.to_dict(),
        }
        if duration is not None:
            data["duration_ms"] = round(duration * 1000, 2)
        if self.verbose:
            data["parsed"] = result.parsed
            data["timestamp"] = datetime.now().isoformat()
        return data

    def _dump_json(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)

    def _dump_yaml(self, data: Dict[str, Any]) -> str:
        return yaml.safe_dump(
            json.loads(json.dumps(data, default=str)),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )
