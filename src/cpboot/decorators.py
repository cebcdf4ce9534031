"""Command decorators."""

from functools import wraps
from typing import Callable

from rich.console import Console

from .errors import CPBootError
from .shared.logging import get_logger

console = Console(stderr=True)

logger = get_logger(__name__)


def handles_errors(func: Callable):
    """Report CPBootError as a red error message and exit with status 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CPBootError as e:
            logger.debug("command failed", code=e.code, error=e.message, data=e.data)
            console.print(f"[red]Error:[/red] {e.message}", highlight=False)
            raise SystemExit(1) from e

    return wrapper
