"""SSH trust bootstrap for a freshly booted instance.

Connects with the root password chosen at create time, installs the
public key and then locks the password so only key-based logins remain.
"""

from __future__ import annotations

import shlex
import time
from functools import partial
from pathlib import Path
from typing import Callable, Sequence

from kitchen_linode.base.config import DriverConfig
from kitchen_linode.base.exceptions import ConfigError, ShellError
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import RetryPolicy, execute
from kitchen_linode.base.shell import ShellBlueprint

MAX_ATTEMPTS = 10
MAX_INTERVAL = 60


def bootstrap_backoff(n: int) -> float:
    """Delay after failed attempt ``n + 1``: 1, 2, 4, ... capped at a minute."""
    return float(min(2**n, MAX_INTERVAL))


def bootstrap_commands(
    hostname: str,
    username: str,
    public_key: str,
    *,
    sudo: bool = True,
) -> list[str]:
    """Commands that set the hostname and switch the login to key-only.

    Each command is safe to re-run after a partial earlier attempt.
    """
    shortname = hostname.split(".")[0]
    hosts = (
        f"127.0.0.1 {hostname} {shortname} localhost\n"
        f"::1 {hostname} {shortname} localhost"
    )
    key = shlex.quote(public_key.strip())
    privileged = sudo and username != "root"

    def as_root(command: str) -> str:
        return f"sudo sh -c {shlex.quote(command)}" if privileged else command

    return [
        as_root(f"printf '%s\\n' {shlex.quote(hosts)} > /etc/hosts"),
        as_root(f"hostnamectl set-hostname {shlex.quote(hostname)}"),
        "mkdir -p ~/.ssh && chmod 700 ~/.ssh",
        f"grep -qxF {key} ~/.ssh/authorized_keys 2>/dev/null"
        f" || echo {key} >> ~/.ssh/authorized_keys; chmod 600 ~/.ssh/authorized_keys",
        as_root(f"passwd -l {shlex.quote(username)}"),
    ]


class SSHBootstrapper:
    """Runs :func:`bootstrap_commands` over SSH, reconnecting on failure.

    Any connect or command failure starts over from a new connection,
    up to ``max_attempts`` times; the last :class:`ShellError` then
    propagates.
    """

    def __init__(
        self,
        shell: ShellBlueprint,
        config: DriverConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        logger: DriverLogger = kl_logger,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self.shell = shell
        self.config = config
        self.sleep = sleep
        self.logger = logger
        self.max_attempts = max_attempts

    def _read_public_key(self) -> str:
        path = Path(self.config.public_key_path or "")
        try:
            return path.read_text()
        except OSError as e:
            raise ConfigError(f"Cannot read public key {path}: {e}") from e

    def _connect_and_run(self, host: str, commands: Sequence[str]) -> None:
        with self.shell.connect(
            host,
            self.config.username,
            self.config.password or "",
            self.config.ssh_timeout,
        ) as session:
            session.run(commands)

    def _log_retry(self, number: int, exc: Exception) -> None:
        self.logger.info(f"Retrying connection... ({exc})", operation="ssh_setup")

    def bootstrap(self, host: str) -> None:
        """Install the public key on *host* and lock the password login."""
        self.logger.info(
            f"Setting up SSH access for key <{self.config.public_key_path}>",
            operation="ssh_setup",
        )
        commands = bootstrap_commands(
            self.config.hostname or host,
            self.config.username,
            self._read_public_key(),
            sudo=self.config.sudo,
        )
        self.logger.info(f"Connecting <{self.config.username}@{host}>...", operation="ssh_setup")
        policy = RetryPolicy(
            max_attempts=self.max_attempts,
            backoff=bootstrap_backoff,
            retry_on=(ShellError,),
            on_retry=self._log_retry,
            sleep=self.sleep,
        )
        execute(partial(self._connect_and_run, host, commands), policy)
        self.logger.info("Done setting up SSH access.", operation="ssh_setup")
