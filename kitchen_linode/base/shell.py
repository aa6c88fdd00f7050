"""Remote shell capability blueprint."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class ShellSession(ABC):
    """An open remote shell connection."""

    @abstractmethod
    def run(self, commands: Sequence[str]) -> None:
        """Run *commands* in order, stopping at the first failure.

        Raises:
            ShellError: If a command exits non-zero or the connection drops.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""

    def __enter__(self) -> ShellSession:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class ShellBlueprint(ABC):
    """Opens remote shell sessions."""

    @abstractmethod
    def connect(self, host: str, username: str, password: str, timeout: float) -> ShellSession:
        """Open a password-authenticated session.

        Raises:
            ShellError: If the host cannot be reached or rejects the login.
        """
