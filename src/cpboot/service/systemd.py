"""systemd-backed service controller.

Unit files are written to an init directory (default /etc/systemd/system)
and driven through systemctl.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from pathlib import Path

from ..errors import StorageIOError, wrap_os_error
from ..shared.logging import get_logger
from .base import ServiceConf

logger = get_logger(__name__)

INIT_DIR = Path("/etc/systemd/system")

UNIT_TEMPLATE = """[Unit]
Description={desc}
After=network.target

[Service]
{environment}ExecStart={cmd}
{output}Restart=on-failure

[Install]
WantedBy=multi-user.target
"""


class SystemdService:
    """Controller for a single systemd unit."""

    def __init__(
        self,
        name: str,
        init_dir: Path | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """Initialize controller.

        Args:
            name: Unit name without the .service suffix
            init_dir: Directory holding unit files
            runner: subprocess.run compatible callable used for systemctl
        """
        self.name = name
        self.init_dir = init_dir or INIT_DIR
        self._run = runner

    @property
    def unit_file(self) -> Path:
        return self.init_dir / f"{self.name}.service"

    def _systemctl(self, *args: str) -> None:
        cmd = ["systemctl", *args]
        try:
            result = self._run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise StorageIOError(
                message="systemctl not found. Is systemd installed?",
                data={"service": self.name},
            ) from e
        if result.returncode != 0:
            raise StorageIOError(
                message=f"systemctl {' '.join(args)} failed: {(result.stderr or '').strip()}",
                data={"service": self.name, "returncode": result.returncode},
            )

    def render(self, conf: ServiceConf) -> str:
        """Render the unit file text for conf."""
        environment = "".join(f"Environment={k}={v}\n" for k, v in sorted(conf.env.items()))
        output = ""
        if conf.out:
            output = f"StandardOutput=append:{conf.out}\nStandardError=append:{conf.out}\n"
        return UNIT_TEMPLATE.format(
            desc=conf.desc,
            cmd=conf.cmd,
            environment=environment,
            output=output,
        )

    def installed(self) -> bool:
        return self.unit_file.exists()

    def install(self, conf: ServiceConf) -> None:
        """Write the unit file and enable it (does not start it)."""
        try:
            self.init_dir.mkdir(parents=True, exist_ok=True)
            self.unit_file.write_text(self.render(conf))
        except OSError as e:
            raise wrap_os_error("cannot write service definition", self.unit_file, e) from e
        self._systemctl("daemon-reload")
        self._systemctl("enable", self.name)
        logger.info("service installed", service=self.name)

    def start(self) -> None:
        self._systemctl("start", self.name)
        logger.info("service started", service=self.name)

    def stop(self) -> None:
        if not self.installed():
            return
        self._systemctl("stop", self.name)
        logger.info("service stopped", service=self.name)

    def remove(self) -> None:
        """Stop, disable and delete the unit. Missing units are ignored."""
        if not self.installed():
            return
        self.stop()
        self._systemctl("disable", self.name)
        try:
            self.unit_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise wrap_os_error("cannot remove service definition", self.unit_file, e) from e
        self._systemctl("daemon-reload")
        logger.info("service removed", service=self.name)


def systemd_factory(init_dir: Path | None = None) -> Callable[[str], SystemdService]:
    """Return a ServiceFactory producing SystemdService controllers."""

    def factory(name: str) -> SystemdService:
        return SystemdService(name, init_dir=init_dir)

    return factory
