"""paramiko implementation of the Shell blueprint."""

from __future__ import annotations

from typing import Sequence

import paramiko

from kitchen_linode.base.exceptions import ShellError
from kitchen_linode.base.shell import ShellBlueprint, ShellSession


class ParamikoSession(ShellSession):
    """Shell session backed by a connected :class:`paramiko.SSHClient`."""

    def __init__(self, client: paramiko.SSHClient, host: str) -> None:
        self.client = client
        self.host = host

    def run(self, commands: Sequence[str]) -> None:
        for command in commands:
            try:
                _stdin, stdout, stderr = self.client.exec_command(command)
                status = stdout.channel.recv_exit_status()
            except (paramiko.SSHException, OSError) as e:
                raise ShellError(f"Lost connection to {self.host}: {e}") from e
            if status != 0:
                err = stderr.read().decode(errors="replace").strip()
                raise ShellError(f"Command exited {status} on {self.host}: {err}")

    def close(self) -> None:
        self.client.close()


class ParamikoShell(ShellBlueprint):
    """Password-authenticated SSH via paramiko.

    Unknown host keys are added on first connect.
    """

    def connect(self, host: str, username: str, password: str, timeout: float) -> ParamikoSession:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                username=username,
                password=password,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ShellError(f"Failed to connect to {username}@{host}: {e}") from e
        return ParamikoSession(client, host)
