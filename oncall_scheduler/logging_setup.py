"""Console logging configuration."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger with a single console handler."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger("oncall_scheduler")
    logger.setLevel(log_level)

    # Avoid stacking handlers when called more than once
    if not any(getattr(h, "_oncall_console", False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._oncall_console = True
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        handler.setLevel(log_level)

    # SQLAlchemy engine logging is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger
