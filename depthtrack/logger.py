"""Centralized logging utilities.

Tracking runs log in two places:
- Run log: depthtrack_YYYYMMDD_HHMMSS.log, mirrored to stdout
- Session logs: one {session}.log per tracked target, file only

A ``ViewTracker`` takes any ``Callable[[str], None]`` as its ``log``
argument; the callables returned here are meant for that slot.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _detached_logger(name: str, level: int) -> logging.Logger:
    """Return a named logger stripped of handlers that does not propagate."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False
    return logger


class Logger:
    """Process-wide logging system for tracking runs.

    Example:
        >>> Logger.init(log_dir="logs")
        >>> log = Logger.get_logging_method("TRACKER")
        >>> log("Model built")
        [2024-01-01 12:00:00] [TRACKER] Model built
        >>> tracker = ViewTracker(view, window, log=Logger.get_session_logger("cup-01"))
    """

    _logger: Optional[logging.Logger] = None
    _log_dir: Optional[Path] = None
    _level: int = logging.INFO
    _session_loggers: Dict[str, logging.Logger] = {}
    _formatter: Optional[logging.Formatter] = None
    _initialized: bool = False

    @classmethod
    def init(
        cls,
        log_dir: str = "logs",
        level: int = logging.INFO,
        console: bool = True,
        file: bool = True,
    ) -> None:
        """Initialize the logging system. Later calls are ignored until ``shutdown``.

        Args:
            log_dir: Directory for the run log and session logs.
            level: Logging level (default INFO).
            console: Whether to mirror the run log to stdout.
            file: Whether to write the run log file.
        """
        if cls._initialized:
            return

        cls._log_dir = Path(log_dir)
        cls._log_dir.mkdir(parents=True, exist_ok=True)
        cls._level = level
        cls._formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        cls._logger = _detached_logger("depthtrack.run", level)

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(cls._formatter)
            cls._logger.addHandler(console_handler)

        if file:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._logger.addHandler(_file_handler(cls._log_dir / f"depthtrack_{stamp}.log", level, cls._formatter))

        cls._initialized = True

    @classmethod
    def get_logging_method(cls, tag_name: str) -> Callable[[str], None]:
        """Get a callable writing ``[tag_name] message`` to the run log.

        Args:
            tag_name: Tag to prepend to log messages.

        Returns:
            A callable that logs messages with the specified tag.
        """
        if not cls._initialized:
            cls.init()

        logger = cls._logger

        def log_method(message: str) -> None:
            logger.info(f"[{tag_name}] {message}")

        return log_method

    @classmethod
    def get_session_logger(cls, session: str) -> Callable[[str], None]:
        """Get a callable writing to ``{log_dir}/{session}.log``.

        Session files are independent from the run log and never echoed to the
        console, so per-frame tracker output does not flood stdout. Repeated calls
        with the same session name share one file.

        Args:
            session: Session name, usually the tracked target's identifier.

        Returns:
            A callable that logs ``[session] message`` to the session file.
        """
        if not cls._initialized:
            cls.init()

        logger = cls._session_loggers.get(session)
        if logger is None:
            logger = _detached_logger(f"depthtrack.session.{session}", cls._level)
            logger.addHandler(_file_handler(cls._log_dir / f"{session}.log", cls._level, cls._formatter))
            cls._session_loggers[session] = logger

        def log_method(message: str) -> None:
            logger.info(f"[{session}] {message}")

        return log_method

    @classmethod
    def get_log_dir(cls) -> Optional[Path]:
        """Get the log directory, or None before ``init``."""
        return cls._log_dir

    @classmethod
    def shutdown(cls) -> None:
        """Close every handler and return to the uninitialized state."""
        loggers = list(cls._session_loggers.values())
        if cls._logger is not None:
            loggers.append(cls._logger)

        for logger in loggers:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

        cls._logger = None
        cls._log_dir = None
        cls._level = logging.INFO
        cls._session_loggers = {}
        cls._formatter = None
        cls._initialized = False


def get_logger(name: str = "depthtrack.run") -> logging.Logger:
    """Get a logger instance, initializing the logging system if needed.

    Args:
        name: Logger name.

    Returns:
        Logger instance.
    """
    if not Logger._initialized:
        Logger.init()
    return logging.getLogger(name)
