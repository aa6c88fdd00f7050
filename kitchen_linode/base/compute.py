"""Compute (instance) capability blueprint."""

from abc import ABC, abstractmethod
from typing import Any


class ComputeBlueprint(ABC):
    """Abstract interface to the provider calls the driver needs.

    Every method may raise a :class:`~kitchen_linode.base.exceptions.ProviderError`
    subclass: ``ApiTimeout``, ``RequestTimeout``, ``RateLimited``,
    ``BadRequest``, ``NotFound`` or the generic base.
    """

    @abstractmethod
    def list_regions(self) -> list[dict[str, Any]]:
        """List regions. Each dict contains at least ``id``."""

    @abstractmethod
    def list_types(self) -> list[dict[str, Any]]:
        """List instance types. Each dict contains at least ``id``."""

    @abstractmethod
    def list_images(self) -> list[dict[str, Any]]:
        """List images. Each dict contains at least ``id``."""

    @abstractmethod
    def list_kernels(self) -> list[dict[str, Any]]:
        """List boot kernels. Each dict contains at least ``id``."""

    @abstractmethod
    def list_instances(self) -> list[dict[str, Any]]:
        """List instances on the account.

        Each dict contains at least:
            - ``id``
            - ``label``
            - ``status`` (provisioning / booting / running / ...)
            - ``ipv4`` (list of addresses)
        """

    @abstractmethod
    def create_instance(
        self,
        region: str,
        type: str,
        label: str,
        image: str,
        username: str,
        root_password: str,
    ) -> dict[str, Any]:
        """Create an instance without booting it.

        Args:
            region: Region ID (e.g. ``us-east``).
            type: Instance type ID (e.g. ``g6-nanode-1``).
            label: Unique instance label.
            image: Image ID (e.g. ``linode/ubuntu22.04``).
            username: Login user the image is deployed for.
            root_password: Initial root password.

        Returns:
            Instance dict (same shape as :meth:`list_instances` entries).
        """

    @abstractmethod
    def boot_instance(self, instance_id: int, kernel: str) -> None:
        """Select *kernel* for the instance and boot it."""

    @abstractmethod
    def get_instance(self, instance_id: int) -> dict[str, Any]:
        """Return a single instance dict."""

    @abstractmethod
    def delete_instance(self, instance_id: int) -> None:
        """Delete an instance."""

    @abstractmethod
    def wait_for_status(self, instance_id: int, status: str) -> dict[str, Any]:
        """Block until the instance reports *status* and return it.

        Polling cadence and timeout are properties of the implementation.
        """
