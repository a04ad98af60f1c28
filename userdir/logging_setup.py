"""
Configure logging for the application.

This module sets up the application's logging infrastructure with both console and file output.
It configures:
- A rotating file handler to manage log files
- A console handler for immediate feedback
- Log level based on the debug mode / log level configuration
- Custom log format with timestamps and source information

The console shell prints its own output to stdout, so the stream handler writes to stderr.
"""

import logging
import logging.handlers
import os
import sys

from userdir.config import get_config_value

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"


def _resolve_log_level() -> int:
    if get_config_value("app_settings.debug_mode", False):
        return logging.DEBUG
    level_name = str(get_config_value("app_settings.log_level", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(console: bool = True) -> None:
    """
    Configure logging with rotating file and stream handlers.

    Args:
        console: Attach a stderr stream handler in addition to the log file.
    """
    log_level = _resolve_log_level()
    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    log_file = get_config_value("app_settings.log_file_name", "logs/userdir.log")
    if not isinstance(log_file, str) or not log_file:
        log_file = "userdir.log"

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e:
            print(
                f"Could not create log directory {log_dir}: {e}. Using current directory for logs.",
                file=sys.stderr,
            )
            log_file = os.path.basename(log_file)

    # Rotates log file when it reaches 5MB, keeps 5 backup files
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)
    except PermissionError:
        print(
            f"Error: Permission denied writing log file to {log_file}. Check permissions.",
            file=sys.stderr,
        )
    except OSError as e:
        print(f"Error setting up file logger: {e}", file=sys.stderr)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(log_formatter)
        root_logger.addHandler(stream_handler)

    logging.info(
        f"Logging setup complete. Level: {logging.getLevelName(log_level)}, File: {log_file}"
    )
