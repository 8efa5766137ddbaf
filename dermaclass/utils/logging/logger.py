# dermaclass/utils/logging/logger.py

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from termcolor import colored

# Simple toggle for minimal vs full formatting
USE_MINIMAL_FORMATTING = False


def get_level_number(level_str):
    """Helper function to safely convert log level strings to numbers."""
    level_map = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def get_main_logger() -> logging.Logger:
    """Gets the main 'dermaclass' logger instance."""
    logger = logging.getLogger("dermaclass")
    if not logger.hasHandlers():
        # Basic fallback configuration if called before create_logger
        logging.basicConfig(level=logging.INFO)
        logger.warning(
            "get_main_logger called before create_logger was run. Using basic config."
        )
    return logger


def create_logger(output_dir=None, name="", log_level="INFO"):
    """
    Create a logger with console output and optional file logging:
    - Console: Shows messages based on configured log_level
    - debug_log.txt (only when output_dir is given): Contains ALL messages (DEBUG and up)

    Child loggers such as 'dermaclass.inference' propagate into the logger
    configured here.
    """
    logger_name = f"dermaclass.{name}" if name else "dermaclass"
    logger = logging.getLogger(logger_name)

    # Handlers filter by their own levels
    logger.setLevel(logging.DEBUG)

    # Prevent double logging if root logger has handlers
    logger.propagate = False

    # Clear existing handlers for this specific logger (prevents duplication on re-call)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if USE_MINIMAL_FORMATTING:
        plain_fmt = "%(message)s"
        color_fmt = "%(message)s"
    else:
        plain_fmt = "[%(asctime)s %(name)s] (%(filename)s %(lineno)d): %(levelname)-8s %(message)s"
        color_fmt = (
            colored("[%(asctime)s %(name)s:%(levelname)-8s]", "green")
            + colored("(%(filename)s:%(lineno)d)", "yellow")
            + ": %(message)s"
        )
    formatter = logging.Formatter(fmt=plain_fmt, datefmt="%Y-%m-%d %H:%M:%S")
    color_formatter = logging.Formatter(fmt=color_fmt, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(get_level_number(log_level))
    console_handler.setFormatter(color_formatter)
    logger.addHandler(console_handler)

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        debug_log_file = os.path.join(output_dir, "debug_log.txt")
        debug_file_handler = RotatingFileHandler(
            debug_log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        debug_file_handler.setLevel(logging.DEBUG)  # Capture everything
        debug_file_handler.setFormatter(formatter)
        logger.addHandler(debug_file_handler)

    return logger
