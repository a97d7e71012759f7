"""Centralized logging configuration for the guitar tuner.

Every module obtains its logger through :func:`get_logger`, which resolves the
module's level from ``MODULE_LOG_LEVELS``. :func:`setup_logging` attaches the
shared console handler and, optionally, a file handler used as the diagnostic
event log.
"""

import logging
import sys
from typing import Optional, Dict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "guitar_tuner": logging.INFO,
    "guitar_tuner.audio": logging.INFO,
    "guitar_tuner.audio.recorder": logging.INFO,
    "guitar_tuner.detection": logging.INFO,  # Set to DEBUG for per-stage pipeline output
    "guitar_tuner.services": logging.INFO,
    "guitar_tuner.core": logging.INFO,
    "guitar_tuner.cli": logging.INFO,
    "guitar_tuner.logging_config": logging.WARNING,  # Logging module itself should be quiet
    # Libraries/third-party
    "sounddevice": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None

# Optional file handler for the diagnostic event log
_file_handler: Optional[logging.Handler] = None

# Cache for loggers to avoid duplicate setup
_logger_cache: Dict[str, logging.Logger] = {}


def _resolve_level(name: str) -> int:
    """Find the configured level for ``name`` using the longest matching prefix."""
    candidate = name
    while candidate:
        if candidate in MODULE_LOG_LEVELS:
            return MODULE_LOG_LEVELS[candidate]
        candidate = candidate.rpartition(".")[0]
    raise ValueError(
        f"Logger '{name}' is not covered by MODULE_LOG_LEVELS. "
        "Please add it or one of its parent packages to the configuration."
    )


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'guitar_tuner' log levels with this level (e.g., "DEBUG").
        log_file: If provided, also append every record to this file.
    """
    global _console_handler, _file_handler

    formatter = logging.Formatter(LOG_FORMAT)

    # Create a single, shared console handler if it doesn't exist
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(formatter)

    if log_file:
        if _file_handler is not None:
            _file_handler.close()
        _file_handler = logging.FileHandler(log_file, mode="a")
        _file_handler.setFormatter(formatter)

    # Determine log levels
    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("guitar_tuner"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    handlers = [h for h in (_console_handler, _file_handler) if h is not None]

    # Apply module-specific levels
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        # Clear existing handlers and add the shared ones
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("guitar_tuner").info("Logging configuration complete")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    The logger name, or one of its parent packages, must be listed in
    MODULE_LOG_LEVELS.

    Args:
        name: The full module name (e.g., 'guitar_tuner.detection.pitch_detector')

    Returns:
        A configured logger instance

    Raises:
        ValueError: If neither the module nor a parent package is in MODULE_LOG_LEVELS
    """
    if name in _logger_cache:
        return _logger_cache[name]

    level = _resolve_level(name)

    logger = logging.getLogger(name)
    if name in MODULE_LOG_LEVELS:
        logger.setLevel(level)
    # Otherwise the level and handlers come from the nearest configured package logger

    _logger_cache[name] = logger
    return logger
