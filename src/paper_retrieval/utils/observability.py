"""Lightweight observability: request IDs, timing spans and log setup."""

import contextvars
import functools
import inspect
import logging
import time
import uuid

logger = logging.getLogger(__name__)

# Context variable for request correlation
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def new_request_id() -> str:
    """Generate and set a new request ID for the current context."""
    rid = uuid.uuid4().hex[:12]
    _request_id.set(rid)
    return rid


def get_request_id() -> str:
    """Get the current request ID (empty string if none set)."""
    return _request_id.get()


def log_prefix() -> str:
    """``[rid] `` for the current request, or an empty string."""
    rid = _request_id.get()
    return f"[{rid}] " if rid else ""


def elapsed_ms(start: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - start) * 1000)


def timed(func=None, *, level=logging.DEBUG):
    """Decorator that logs function execution time.

    Usage:
        @timed
        def my_func(): ...

        @timed(level=logging.INFO)
        async def my_async_func(): ...

    Logs: [req_id] module.function took Xms
    """
    def decorator(fn):
        name = f"{fn.__module__}.{fn.__qualname__}"

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return await fn(*args, **kwargs)
                finally:
                    logger.log(level, f"{log_prefix()}{name} took {elapsed_ms(start)}ms")
            return async_wrapper
        else:
            @functools.wraps(fn)
            def sync_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return fn(*args, **kwargs)
                finally:
                    logger.log(level, f"{log_prefix()}{name} took {elapsed_ms(start)}ms")
            return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging for command-line use."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
