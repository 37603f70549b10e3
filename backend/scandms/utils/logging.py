# backend/scandms/utils/logging.py
import logging
import sys
from logging.handlers import RotatingFileHandler

from ..config import settings

LOG_DIR = settings.STORAGE_PATH / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Attributes every LogRecord carries; anything else on a record came in through `extra`
RESERVED_ATTRS = frozenset({
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'msg', 'name', 'pathname', 'process', 'processName',
    'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName'
})


class ExtraFormatter(logging.Formatter):
    """Formatter that appends the structured `extra` fields as key=value pairs"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in RESERVED_ATTRS
        }
        if not extras:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{message} | {rendered}"


verbose_formatter = ExtraFormatter(
    '\033[1;36m%(asctime)s\033[0m - \033[1;33m%(name)s\033[0m - \033[1;35m%(levelname)s\033[0m [\033[1;34m%(module)s:%(lineno)d\033[0m] - %(message)s'
)
file_formatter = ExtraFormatter(
    '%(asctime)s - %(name)s - %(levelname)s [%(module)s:%(lineno)d] - %(message)s'
)


class ScanLogger:
    """Component logger that keeps `extra` keys from clobbering LogRecord attributes"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"scandms.{name}")
        self.logger.setLevel(settings.LOG_LEVEL)
        self.logger.propagate = False
        self.setup_handlers(name)

    def setup_handlers(self, name: str):
        if self.logger.handlers:
            return

        file_handler = RotatingFileHandler(
            LOG_DIR / f"{name}.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        file_handler.setFormatter(file_formatter)
        self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(verbose_formatter)
        self.logger.addHandler(console_handler)

    @staticmethod
    def _sanitize_extra(extra):
        if extra is None:
            return None
        return {
            (f"extra_{key}" if key in RESERVED_ATTRS else key): value
            for key, value in extra.items()
        }

    def debug(self, msg, extra=None, exc_info=None):
        self.logger.debug(msg, extra=self._sanitize_extra(extra), exc_info=exc_info)

    def info(self, msg, extra=None, exc_info=None):
        self.logger.info(msg, extra=self._sanitize_extra(extra), exc_info=exc_info)

    def warning(self, msg, extra=None, exc_info=None):
        self.logger.warning(msg, extra=self._sanitize_extra(extra), exc_info=exc_info)

    def error(self, msg, extra=None, exc_info=None):
        self.logger.error(msg, extra=self._sanitize_extra(extra), exc_info=exc_info)


api_logger = ScanLogger("api")
db_logger = ScanLogger("database")
service_logger = ScanLogger("service")
ocr_logger = ScanLogger("ocr")

__all__ = ["ScanLogger", "api_logger", "db_logger", "service_logger", "ocr_logger"]
