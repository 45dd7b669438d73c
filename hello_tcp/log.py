import sys
from enum import Enum

from loguru import logger

LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class FileLog:
    """
    A log file that every thread in the process can write to.

    Each entry is rendered by loguru as
    ``[YYYY-MM-DD HH:MM:SS] LEVEL: message`` and handed to ``write``,
    which opens the file in append mode, writes the line and closes it
    again. Nothing is kept open between calls, so concurrent handlers
    only ever interleave at line granularity.

    Logging never raises: if the file cannot be opened a short notice
    goes to stderr and the entry is dropped.
    """

    def __init__(self, path: str):
        self.path = str(path)
        self._logger = logger.bind(log_file=self.path)
        self._handler_id = logger.add(
            self.write,
            format=LOG_FORMAT,
            level="DEBUG",
            filter=self._owns,
            colorize=False,
            catch=True,
        )

    def _owns(self, record) -> bool:
        return record["extra"].get("log_file") == self.path

    def write(self, message: str) -> None:
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(message)
        except OSError:
            print("Failed to open log file.", file=sys.stderr, flush=True)

    def log(self, level: LogLevel, message: str) -> None:
        self._logger.log(level.value, message)

    def debug(self, message: str) -> None:
        self.log(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def warning(self, message: str) -> None:
        self.log(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def close(self) -> None:
        """Detach from loguru; later calls are silently dropped."""
        if self._handler_id is not None:
            logger.remove(self._handler_id)
            self._handler_id = None


def quiet_console() -> None:
    """Drop loguru's default stderr handler so the console only shows our prints."""
    logger.remove()


# ---------- Convenience ----------
def say(*args):
    print(*args, flush=True)


def complain(*args):
    print(*args, file=sys.stderr, flush=True)
