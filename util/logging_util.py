import logging
import sys
from typing import Optional

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger


def log_run_summary(logger: logging.Logger, job_name: str, counts: dict,
                    error: Optional[str] = None):
    """
    Logs the outcome of a batch job as one line of counts.

    Args:
        logger: Logger instance to use
        job_name: Short job label, e.g. "ingest" or "digest"
        counts: Mapping of counter name to value
        error: Optional error message if the run stopped early
    """
    counts_str = ", ".join(f"{key}={value}" for key, value in counts.items())
    if error:
        logger.warning(f"Run '{job_name}' stopped early ({counts_str}): {error}")
    else:
        logger.info(f"Run '{job_name}' complete ({counts_str})")
