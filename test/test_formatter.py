import json

import pytest
import yaml

from multiverse_runtime.cli.formatter import ResultFormatter
from multiverse_runtime.core.result import WorkerResult
from multiverse_runtime.errors import ExecutionError, WorkerNotFound


PARSED = WorkerResult.parse('{"status": "success", "message": "done", "data": {"total": 3}}')
RAW = WorkerResult.raw("plain text\n")


@pytest.mark.unit
class TestResultFormatter:
    def test_json(self):
        output = ResultFormatter(format="json", use_colors=False).format_result("job", PARSED, 0.01234)
        data = json.loads(output)
        assert data == {
            "worker": "job",
            "success": True,
            "result": {"status": "success", "message": "done", "data": {"total": 3}},
            "duration_ms": 12.34,
        }

    def test_yaml(self):
        output = ResultFormatter(format="yaml", use_colors=False).format_result("job", RAW)
        data = yaml.safe_load(output)
        assert data["result"] == {"status": "success", "raw_output": "plain text\n"}
        assert "duration_ms" not in data

    def test_verbose_json_marks_fallback(self):
        output = ResultFormatter(format="json", verbose=True, use_colors=False).format_result("job", RAW)
        data = json.loads(output)
        assert data["parsed"] is False
        assert "timestamp" in data

    def test_pretty_parsed(self):
        output = ResultFormatter(use_colors=False).format_result("job", PARSED, 0.5)
        assert "Worker job succeeded" in output
        assert "done" in output
        assert '"total": 3' in output
        assert "Duration: 500.00 ms" in output
        assert "\033[" not in output

    def test_pretty_raw(self):
        output = ResultFormatter(use_colors=False).format_result("job", RAW)
        assert "RAW OUTPUT" in output
        assert "plain text" in output

    def test_pretty_non_success_status(self):
        result = WorkerResult.parse('{"status": "error", "message": "bad input"}')
        output = ResultFormatter(use_colors=False).format_result("job", result)
        assert "finished with status: error" in output


@pytest.mark.unit
class TestErrorFormatting:
    def test_json_error(self):
        error = WorkerNotFound("job", "python", ["/a"])
        data = json.loads(ResultFormatter(format="json", use_colors=False).format_error("job", error))
        assert data["success"] is False
        assert data["error"] == "WorkerNotFound"
        assert data["checked_paths"] == ["/a"]

    def test_pretty_error_shows_stderr(self):
        error = ExecutionError("Worker [job] failed with exit code 1", error_output="Traceback...\n")
        output = ResultFormatter(use_colors=False).format_error("job", error)
        assert output.splitlines()[0] == "❌ Worker [job] failed with exit code 1"
        assert "Traceback..." in output

    def test_yaml_error(self):
        error = ExecutionError("boom", exit_code=2, error_output="trace")
        data = yaml.safe_load(ResultFormatter(format="yaml", use_colors=False).format_error(None, error))
        assert data["error"] == "ExecutionError"
        assert data["error_output"] == "trace"
