import pytest

from multiverse_runtime.core.result import WorkerResult


@pytest.mark.unit
class TestWorkerResultParse:
    def test_conventional_object(self):
        result = WorkerResult.parse('{"status": "success", "message": "ok", "data": {"n": 1}}')
        assert result.status == "success"
        assert result.message == "ok"
        assert result.data == {"n": 1}
        assert result.raw_output is None
        assert result.parsed is True
        assert result.is_success()

    def test_missing_keys_are_none(self):
        result = WorkerResult.parse('{"value": 3}')
        assert result.status is None
        assert not result.is_success()
        assert result["value"] == 3
        assert "value" in result
        assert result.get("other", "default") == "default"

    @pytest.mark.parametrize("stdout", ["hello\n", "", "{not json", "[1, 2]", '"text"', "42", "null"])
    def test_fallback(self, stdout):
        result = WorkerResult.parse(stdout)
        assert result.parsed is False
        assert result.status == "success"
        assert result.raw_output == stdout
        assert result.to_dict() == {"status": "success", "raw_output": stdout}

    def test_surrounding_whitespace_is_accepted(self):
        result = WorkerResult.parse('\n  {"status": "success"}\n')
        assert result.parsed is True

    def test_to_dict_is_a_copy(self):
        result = WorkerResult.parse('{"status": "success"}')
        result.to_dict()["status"] = "changed"
        assert result.status == "success"
        assert result["status"] == "success"
