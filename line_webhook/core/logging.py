import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger once and return it.

    Modules log through logging.getLogger(__name__), so everything under
    ``line_webhook`` ends up on the console handler installed here.
    """
    logger = logging.getLogger("line_webhook")
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # avoid duplicate handlers when the app is created more than once
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)
    return logger
