import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

# 定义日志格式
DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "multiverse_runtime"

# 定义日志级别
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logger(
    name: str,
    level: str = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    log_file: Optional[str] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    设置并返回一个配置好的logger实例

    Args:
        name: logger名称
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 日志格式
        date_format: 日期格式
        log_file: 日志文件路径，如果为None则只输出到控制台
        console_output: 是否输出到控制台 (stderr, stdout is reserved for results)

    Returns:
        logging.Logger: 配置好的logger实例
    """
    logger = logging.getLogger(name)

    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # 清除已有的handlers
    logger.handlers.clear()

    formatter = logging.Formatter(log_format, date_format)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        # 确保日志目录存在
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(
    name: str = PACKAGE_LOGGER,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    获取一个logger实例的便捷函数

    Without ``level`` or ``log_file`` the logger is left unconfigured and
    propagates to the package logger set up by ``configure_logging``.

    Args:
        name: logger名称
        level: 日志级别
        log_file: 日志文件路径

    Returns:
        logging.Logger
    """
    if level is None and log_file is None:
        return logging.getLogger(name)

    return setup_logger(
        name=name,
        level=level or "INFO",
        log_file=log_file,
    )


def configure_structlog(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure structlog for worker failure reports.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for machine-readable events, "text" for the console renderer
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    channel: Optional[str] = None,
) -> logging.Logger:
    """
    Set up the package logger and structlog in one call, used by the CLI.

    ``channel`` is the stdlib logger structlog failure reports are routed to;
    it gets a bare message handler since structlog already rendered the line.
    """
    configure_structlog(log_level, log_format)
    if channel:
        setup_logger(channel, level=log_level, log_format="%(message)s", log_file=log_file)
    return setup_logger(PACKAGE_LOGGER, level=log_level, log_file=log_file)
