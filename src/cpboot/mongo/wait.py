"""Bounded readiness polling for the transient state database.

Polls a TCP port until it accepts connections or the attempt budget is
spent, in the same attempt/interval shape used for control plane health
checks.
"""

from __future__ import annotations

import socket
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime


@dataclass
class ReadinessResult:
    """Result of waiting for a port."""

    ready: bool
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None


def tcp_probe(host: str, port: int, timeout: float) -> None:
    """Open and close a TCP connection; raises OSError on failure."""
    with socket.create_connection((host, port), timeout=timeout):
        pass


class ReadinessPoller:
    """Poll a TCP port until it is reachable."""

    def __init__(
        self,
        max_attempts: int = 30,
        interval_seconds: float = 1.0,
        timeout_seconds: float = 2.0,
        probe: Callable[[str, int, float], None] = tcp_probe,
    ):
        """Initialize readiness poller.

        Args:
            max_attempts: Maximum number of connection attempts.
            interval_seconds: Seconds between attempts.
            timeout_seconds: Timeout for each connection attempt.
            probe: Callable raising OSError while the port is not ready.
        """
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.probe = probe

    def wait_for_port(
        self,
        host: str,
        port: int,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ReadinessResult:
        """Poll until host:port accepts connections or attempts run out.

        Args:
            host: Host to connect to.
            port: Port to connect to.
            on_attempt: Optional callback called with (attempt, max_attempts, error).

        Returns:
            ReadinessResult with status information.
        """
        start = datetime.now()
        last_error: str | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.probe(host, port, self.timeout_seconds)
            except OSError as e:
                last_error = str(e) or type(e).__name__
            else:
                elapsed = (datetime.now() - start).total_seconds()
                return ReadinessResult(ready=True, attempts=attempt, elapsed_seconds=elapsed)

            if on_attempt:
                on_attempt(attempt, self.max_attempts, last_error)

            if attempt < self.max_attempts:
                time.sleep(self.interval_seconds)

        elapsed = (datetime.now() - start).total_seconds()
        return ReadinessResult(
            ready=False,
            attempts=self.max_attempts,
            elapsed_seconds=elapsed,
            error=f"{host}:{port} did not accept connections within timeout. "
            f"Last error: {last_error}",
        )
