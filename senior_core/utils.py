"""
Utility functions for SeniorHub.
Contains helpers for logging, time conversion, display formatting and debouncing.
"""

import logging
import os
import threading
import time
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Optional, Union

import arrow

DEFAULT_TIMEZONE = os.getenv("SENIORHUB_TIMEZONE", "Asia/Manila")

DAY_MS = 24 * 60 * 60 * 1000


def setup_logging(log_level: str = "INFO", log_file: str = None) -> logging.Logger:
    """
    Set up logging configuration for SeniorHub.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Returns:
        Configured logger
    """
    logger = logging.getLogger("senior_core")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_millis(value: Union[None, int, float, str, datetime]) -> int:
    """
    Normalize a stored timestamp to epoch milliseconds.

    Accepts epoch milliseconds, datetimes (including Firestore timestamps) and ISO strings.
    Missing or unparsable values map to 0.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return int(arrow.get(value).timestamp() * 1000)
    try:
        return int(arrow.get(value).timestamp() * 1000)
    except (ValueError, TypeError):
        return 0


def to_arrow(value: Union[None, int, float, str, datetime], tz: str = DEFAULT_TIMEZONE) -> Optional[arrow.Arrow]:
    millis = to_millis(value)
    if not millis:
        return None
    return arrow.get(millis / 1000).to(tz)


def format_timestamp(value: Any, fmt: str, default: str = "", tz: str = DEFAULT_TIMEZONE) -> str:
    """Format a timestamp with an arrow format string, or return `default` when unset."""
    moment = to_arrow(value, tz)
    if moment is None:
        return default
    return moment.format(fmt)


def days_between(start_ms: int, end_ms: int, tz: str = DEFAULT_TIMEZONE) -> int:
    """Whole calendar days from the day of `start_ms` to the day of `end_ms` (midnight to midnight)."""
    start = arrow.get(start_ms / 1000).to(tz).floor("day")
    end = arrow.get(end_ms / 1000).to(tz).floor("day")
    return (end.date() - start.date()).days


def format_amount(amount: Optional[str], empty: str) -> str:
    """Render a stored amount string: `empty` when blank, "Free" for zero, a dollar figure otherwise."""
    if amount is None or not str(amount).strip():
        return empty
    if str(amount).strip() == "0":
        return "Free"
    return f"${amount}"


def debounce(wait: float) -> Callable:
    """
    Delay calls to the decorated function until `wait` seconds pass without a new call.
    Only the last call's arguments are used.
    """
    def decorator(func: Callable) -> Callable:
        lock = threading.Lock()
        state = {"timer": None}

        @wraps(func)
        def debounced(*args, **kwargs):
            with lock:
                if state["timer"] is not None:
                    state["timer"].cancel()
                timer = threading.Timer(wait, func, args=args, kwargs=kwargs)
                timer.daemon = True
                state["timer"] = timer
                timer.start()

        def cancel():
            with lock:
                if state["timer"] is not None:
                    state["timer"].cancel()
                    state["timer"] = None

        debounced.cancel = cancel
        return debounced

    return decorator
