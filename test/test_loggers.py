import logging

import pytest
import structlog
from structlog.testing import capture_logs

from multiverse_runtime.core.reporting import StructlogWorkerLogger
from multiverse_runtime.utils.loggers import PACKAGE_LOGGER, configure_logging, get_logger, setup_logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    for name in (PACKAGE_LOGGER, "multiverse-test", "test.setup_logger"):
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
    structlog.reset_defaults()


@pytest.mark.unit
class TestStructlogWorkerLogger:
    def test_error_carries_context(self):
        with capture_logs() as logs:
            StructlogWorkerLogger("multiverse").error(
                "Multiverse Worker Failed: job",
                {"worker": "job", "driver": "python", "payload": {"a": 1}},
            )

        assert logs == [
            {
                "event": "Multiverse Worker Failed: job",
                "log_level": "error",
                "worker": "job",
                "driver": "python",
                "payload": {"a": 1},
            }
        ]


@pytest.mark.unit
class TestLoggers:
    def test_get_logger_without_options_is_unconfigured(self):
        logger = get_logger("multiverse_runtime.some.module")
        assert logger.handlers == []

    def test_setup_logger_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "multiverse.log"
        logger = setup_logger("test.setup_logger", level="DEBUG", log_file=str(log_file), console_output=False)
        logger.debug("written")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert "written" in log_file.read_text()

    def test_configure_logging(self):
        logger = configure_logging("WARNING", "json", channel="multiverse-test")
        assert logger.name == PACKAGE_LOGGER
        assert logger.level == logging.WARNING
        assert len(logging.getLogger("multiverse-test").handlers) == 1
