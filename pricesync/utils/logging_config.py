"""
Root logger setup for the dashboard and the price synchronizer.

Output goes to stdout, with an optional append-mode log file. HTTP client
loggers are kept at WARNING unless the dashboard itself runs at DEBUG.
"""

import logging
import sys
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-8s] [%(name)-32s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# requests logs every pooled connection through urllib3
NOISY_LOGGERS = ("urllib3",)


def setup_logging(level=logging.INFO, log_to_file: bool = False, log_filename: str = "pricesync.log",
                  logger_levels: Optional[Dict[str, int]] = None):
    """
    Replaces the root logger's handlers with a stdout handler (and a file one).

    Safe to call more than once; earlier handlers are removed first.

    Args:
        level: Root level, e.g. logging.INFO.
        log_to_file: Also append records to `log_filename`.
        log_filename: Log file path, used only with `log_to_file`.
        logger_levels: Per-logger overrides applied last, e.g.
            {"pricesync.services.synchronizer": logging.DEBUG}.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    overrides = {}
    if level > logging.DEBUG:
        overrides.update({name: logging.WARNING for name in NOISY_LOGGERS})
    overrides.update(logger_levels or {})
    for name, logger_level in overrides.items():
        logging.getLogger(name).setLevel(logger_level)

    destination = "console"
    if log_to_file:
        try:
            file_handler = logging.FileHandler(log_filename, mode='a')
        except OSError as e:
            logging.error(f"Cannot open log file '{log_filename}', logging to console only: {e}")
        else:
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            destination = f"console and '{log_filename}'"

    logging.info(f"Logging at {logging.getLevelName(level)} to {destination}.")
