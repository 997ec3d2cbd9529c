# Logger - Centralized Logging System
# One configured logger per component, level and file set once by the runner

"""
Logger Module

Responsibilities:
- Setup named component loggers (HeartbeatSender, ActivityDebouncer, ...)
- Apply the configured level and log file to every component logger,
  including ones created before the configuration was read
- Prevent duplicate handler registration when a component is rebuilt

Diagnostics are the only user-visible surface of the plugin, so every
component logs through here instead of printing.
"""

import logging
import sys
import atexit
from pathlib import Path
from logging.handlers import RotatingFileHandler

FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Registry of configured loggers
_configured_loggers = {}

# Shared settings, set by configure_logging()
_log_file = None
_level = "INFO"

def _file_handler(log_file: str) -> RotatingFileHandler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1048576,  # 1MB
        backupCount=3,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler

def _apply(logger: logging.Logger, level: str, log_file: str = None):
    """Set level and swap the file handler to log_file"""
    logger.setLevel(getattr(logging, level.upper()))

    for handler in logger.handlers[:]:
        if isinstance(handler, RotatingFileHandler):
            logger.removeHandler(handler)
            handler.close()
    if log_file:
        logger.addHandler(_file_handler(log_file))

def configure_logging(log_file: str = None, level: str = "INFO"):
    """
    Set the level and log file for all component loggers.

    Loggers already handed out are updated in place, so components that
    were built before the config was loaded follow it too.

    Args:
        log_file: Log file path (None disables file logging)
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: Unknown level name
    """
    global _log_file, _level
    if not isinstance(getattr(logging, str(level).upper(), None), int):
        raise ValueError(f"Unknown log level: {level}")

    _log_file = log_file
    _level = str(level).upper()
    for logger in _configured_loggers.values():
        _apply(logger, _level, _log_file)

def setup_logger(name: str = "crackboard", level: str = None, log_file: str = None):
    """
    Setup logger with console and file handlers (singleton pattern)

    Returns the existing logger if already configured, so re-created
    components (e.g. a plugin reloaded by its host) do not stack handlers.

    Args:
        name: Logger name
        level: Log level (defaults to the configured level)
        log_file: Optional log file path (defaults to the configured file)

    Returns:
        Configured logger instance (existing or new)
    """
    if name in _configured_loggers:
        return _configured_loggers[name]

    logger = logging.getLogger(name)

    if logger.handlers:
        _configured_loggers[name] = logger
        return logger

    logger.propagate = False

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    _apply(logger, level or _level, log_file or _log_file)

    def cleanup_handlers():
        """Close all handlers on interpreter exit."""
        for handler in logger.handlers[:]:
            try:
                handler.close()
                logger.removeHandler(handler)
            except Exception:
                pass

    atexit.register(cleanup_handlers)

    _configured_loggers[name] = logger

    return logger
