import logging
import os
import sys
import time
from datetime import datetime, timezone

import structlog


# Custom logging formatter to support colors
class ColoredFormatter(logging.Formatter):
    # Define color codes
    COLORS = {
        'DEBUG': '\033[94m',   # Blue
        'INFO': '\033[92m',    # Green
        'WARNING': '\033[93m', # Yellow
        'ERROR': '\033[91m',   # Red
        'CRITICAL': '\033[95m' # Magenta
    }
    RESET = '\033[0m'  # Reset color

    def format(self, record):
        # Add color to the log level name
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        return super().format(record)


def configure_logging(level=logging.INFO, json_output=None, colorize=None, stream=None):
    """
    Set up stdlib logging and structlog for an entry-point script.

    Library modules never call this; they log through the logger handed to
    them (or the "main" logger).
    """
    stream = stream or sys.stderr
    if colorize is None:
        colorize = hasattr(stream, "isatty") and stream.isatty()
    if json_output is None:
        json_output = os.environ.get('LOG_FORMAT') == 'json'

    fmt = '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s'
    datefmt = '%Y-%m-%d %H:%M:%S'
    formatter = ColoredFormatter(fmt, datefmt=datefmt) if colorize else logging.Formatter(fmt, datefmt=datefmt)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=colorize)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    return structlog.get_logger('main')


class Timer:
    """Named wall-clock timers, e.g. for timing container extraction"""

    def __init__(self):
        self._started = {}
        self._stopped = {}

    def start(self, name):
        self._started[name] = time.perf_counter()
        self._stopped.pop(name, None)

    def stop(self, name):
        if name not in self._started:
            raise KeyError(f"Timer '{name}' was never started")
        self._stopped[name] = time.perf_counter()
        return self.elapsed(name)

    def elapsed(self, name):
        """Seconds between start and stop (or now, if still running)"""
        started = self._started[name]
        if name in self._stopped:
            return self._stopped[name] - started
        return time.perf_counter() - started


def format_size_py(size):
    if size is None: return "0 B"
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} TB"


def now_utc():
    """Returns current datetime in UTC (aware)"""
    return datetime.now(timezone.utc)
