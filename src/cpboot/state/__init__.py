"""State database contents."""

from .seed import initialize_state

__all__ = ["initialize_state"]
