"""
Logging utilities for the feedback pipeline.

Key goals:
- Provide a simple `get_logger(name)` for modules.
- Configure root logging once on startup without duplicate handlers.
- Keep journal text out of logs beyond a short preview.
"""

from typing import Callable, Optional
import logging
import time
import inspect
import functools

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: int = logging.INFO,
    file_path: Optional[str] = None,
    file_level: int = logging.DEBUG,
    console_level: Optional[int] = None,
) -> None:
    """Configure root logger once and avoid duplicate handlers.

    Call this from the entry point before any feedback is generated. Library
    code never configures handlers itself.
    """
    root = logging.getLogger()
    if root.hasHandlers():
        root.handlers.clear()

    # Root level is the lowest of console/file levels so neither handler is starved
    root.setLevel(min(level, file_level) if file_path else level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    ch = logging.StreamHandler()
    ch.setLevel(console_level if console_level is not None else level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if file_path:
        try:
            fh = logging.FileHandler(file_path, mode="a", encoding="utf-8")
            fh.setLevel(file_level)
            fh.setFormatter(fmt)
            root.addHandler(fh)
        except OSError as e:
            root.warning(f"Could not open log file {file_path}: {e}; continuing console-only")


def get_logger(name: str = "feedback") -> logging.Logger:
    """Return a module-specific logger.

    Root configuration should be done once via `configure_logging()` in the
    application entrypoint (main.py) to avoid duplicate handlers.
    """
    return logging.getLogger(name)


def preview_text(text: Optional[str], limit: int = 50) -> str:
    """Short single-line preview of user text for log lines."""
    if not text:
        return ""
    preview = text[:limit] + "..." if len(text) > limit else text
    return preview.replace("\n", " ")


# --- Lightweight decorators ---

def log_and_time(label: str = "Function") -> Callable:
    """Decorator to log start/end and duration at DEBUG level."""
    def decorator(func):
        log = get_logger(func.__module__)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_func_wrapper(*args, **kwargs):
                start = time.time()
                log.debug(f"[{label}] START")
                result = await func(*args, **kwargs)
                log.debug(f"[{label}] END - Duration: {time.time() - start:.2f}s")
                return result
            return async_func_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.time()
            log.debug(f"[{label}] START")
            result = func(*args, **kwargs)
            log.debug(f"[{label}] END - Duration: {time.time() - start:.2f}s")
            return result
        return sync_wrapper

    return decorator


def log_async_operation(func):
    """Decorator to log async operation start/complete/errors."""
    log = get_logger(func.__module__)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        log.debug(f"[ASYNC START] {func.__name__}")
        try:
            result = await func(*args, **kwargs)
            log.debug(f"[ASYNC COMPLETE] {func.__name__}")
            return result
        except Exception as e:
            log.error(f"[ASYNC ERROR] {func.__name__}: {type(e).__name__}: {e}")
            raise

    return wrapper


"""
Module Contract
- Purpose: Central logging utilities used throughout the project. Provides named loggers, a text preview helper and simple timing decorators.
- Inputs:
  - configure_logging(level, file_path), get_logger(name), preview_text(text), log_and_time(label), log_async_operation
- Outputs:
  - Logger instances; wrapped functions with timing logs.
- Side effects:
  - None (root configuration happens in entrypoints via configure_logging()).
"""
