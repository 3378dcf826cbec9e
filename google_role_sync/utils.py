"""
Shared utilities: logging + retry helpers.
"""

import functools
import logging
import time
from logging.handlers import RotatingFileHandler
from typing import Callable, Iterable, Optional, Type

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # Re-running setup must not stack handlers
    if root.hasHandlers():
        root.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5_000_000, backupCount=3
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def retry(
    exceptions: Iterable[Type[BaseException]],
    tries: int = 5,
    base_delay: float = 0.5,
    backoff: float = 2.0,
    max_delay: float = 8.0,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
) -> Callable:
    """
    Exponential backoff retry decorator.

    :param exceptions: exception classes that trigger another attempt
    :param tries: total attempts, including the first one
    :param base_delay: seconds to wait after the first failure
    :param backoff: delay multiplier between attempts
    :param max_delay: upper bound for a single wait
    :param should_retry: extra filter; a caught exception it rejects is
        raised at once
    """
    exceptions = tuple(exceptions)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            delay = base_delay
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1
                    if attempt >= tries or (should_retry and not should_retry(e)):
                        raise
                    LOGGER.warning(
                        "%s failed (attempt %d/%d): %s",
                        func.__name__,
                        attempt,
                        tries,
                        e,
                    )
                    time.sleep(min(delay, max_delay))
                    delay *= backoff

        return wrapper

    return decorator
