"""
Worker result definitions
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class WorkerResult:
    """
    Structured output of one worker run.

    Workers conventionally print ``{"status", "message", "data"}``; any other
    keys stay available through ``output``. When stdout is not a JSON object
    the result falls back to ``status="success"`` with the text in
    ``raw_output`` and ``parsed`` set to False.
    """

    status: Optional[str] = None
    message: Optional[str] = None
    data: Any = None
    raw_output: Optional[str] = None
    output: Dict[str, Any] = field(default_factory=dict)
    parsed: bool = True

    @classmethod
    def from_output(cls, output: Dict[str, Any]) -> "WorkerResult":
        return cls(
            status=output.get("status"),
            message=output.get("message"),
            data=output.get("data"),
            raw_output=output.get("raw_output"),
            output=dict(output),
        )

    @classmethod
    def raw(cls, text: str) -> "WorkerResult":
        return cls(
            status="success",
            raw_output=text,
            output={"status": "success", "raw_output": text},
            parsed=False,
        )

    @classmethod
    def parse(cls, stdout: str) -> "WorkerResult":
        """
        Parse worker stdout, falling back to ``raw`` for anything that is not
        a single JSON object.
        """
        try:
            decoded = json.loads(stdout)
        except ValueError:
            return cls.raw(stdout)
        if not isinstance(decoded, dict):
            return cls.raw(stdout)
        return cls.from_output(decoded)

    def is_success(self) -> bool:
        return self.status == "success"

    def get(self, key: str, default: Any = None) -> Any:
        return self.output.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.output[key]

    def __contains__(self, key: object) -> bool:
        return key in self.output

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.output)
