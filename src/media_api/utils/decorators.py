"""Timing decorator for media store operations."""
import functools
import logging
import time
from typing import Any, Callable, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def _label(func: Callable[..., Any], args: tuple) -> str:
    backend = getattr(args[0], "backend", None) if args else None
    return f"{backend}:{func.__name__}" if backend else func.__qualname__


def log_execution_time(func: F) -> F:
    """Log how long a store call took, tagged with the store's backend.

    Failures are logged with their duration and re-raised unchanged.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        label = _label(func, args)
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.warning("%s failed after %.3fs: %s", label, time.perf_counter() - start_time, e)
            raise
        logger.info("%s completed in %.3fs", label, time.perf_counter() - start_time)
        return result
    return cast(F, wrapper)
