import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
_DATE_FORMAT = "%H:%M:%S"

# Loggers that get their own copy of our handlers instead of propagating.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _build_handlers(log_path: str, console_level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(_FORMAT, _DATE_FORMAT)

    file_handler = RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)
    file_handler.name = "fabric_file"

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(console_level)
    stream_handler.name = "fabric_stream"
    return [file_handler, stream_handler]


def _install(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        if old.name in ("fabric_file", "fabric_stream"):
            old.close()
    for handler in handlers:
        logger.addHandler(handler)


def configure_logging(logs_dir: str, console_level: int = logging.INFO) -> str:
    """Send all logs to ``logs_dir/server_<timestamp>.log`` and the console.

    Safe to call more than once; handlers from a previous call are closed.
    Returns the path of the new log file.
    """
    os.makedirs(logs_dir, exist_ok=True)
    log_path = os.path.join(
        logs_dir, f"server_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"
    )
    handlers = _build_handlers(log_path, console_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    _install(root_logger, handlers)

    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.setLevel(logging.INFO)
        server_logger.propagate = False
        _install(server_logger, handlers)

    # urllib3 logs every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.INFO)

    root_logger.info("Logging initialized: %s", log_path)
    return log_path
