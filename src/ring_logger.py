import os
import logging
from colorama import Fore, Style, init

init(autoreset=True)

LOG_DIR_ENV = "HASH_RING_LOG_DIR"
LOG_LEVEL_ENV = "HASH_RING_LOG_LEVEL"
LOG_FILE = "log.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _ConsoleFormatter(logging.Formatter):
    """Colors the logger name per ring and the level name per severity."""

    _level_colors = {
        logging.DEBUG: Style.DIM,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, name_color: str):
        super().__init__(
            f"%(asctime)s - {name_color}%(name)s{Style.RESET_ALL} - %(levelname)s - %(message)s"
        )

    def format(self, record):
        color = self._level_colors.get(record.levelno)
        if color is None:
            return super().format(record)
        return f"{color}{super().format(record)}{Style.RESET_ALL}"


class Logger:
    _loggers = {}
    _colors = [
        Fore.BLUE,
        Fore.GREEN,
        Fore.CYAN,
        Fore.MAGENTA,
        Fore.WHITE,
    ]

    @staticmethod
    def _color_for_name(name: str) -> str:
        # str hash() is salted per process; keep colors stable across runs
        idx = sum(name.encode()) % len(Logger._colors)
        return Logger._colors[idx]

    @staticmethod
    def _file_handler(log_dir: str) -> logging.Handler:
        os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(os.path.join(log_dir, LOG_FILE))
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        return handler

    @staticmethod
    def get_logger(log_name: str, log_dir: str = None, level: str = None):
        """
        Returns a cached logger writing to <log_dir>/log.log and a colored console.

        log_dir and level fall back to HASH_RING_LOG_DIR and HASH_RING_LOG_LEVEL.
        """
        if log_name in Logger._loggers:
            return Logger._loggers[log_name]

        level_name = (level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()
        logger = logging.getLogger(log_name)
        logger.setLevel(getattr(logging, level_name, logging.INFO))
        logger.propagate = False

        logger.addHandler(
            Logger._file_handler(log_dir or os.environ.get(LOG_DIR_ENV, "logs"))
        )
        console = logging.StreamHandler()
        console.setFormatter(_ConsoleFormatter(Logger._color_for_name(log_name)))
        logger.addHandler(console)

        Logger._loggers[log_name] = logger
        return logger

    @staticmethod
    def shutdown(log_name: str):
        """Closes and detaches the handlers of a cached logger and forgets it."""
        logger = Logger._loggers.pop(log_name, None)
        if logger is None:
            return
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
