"""Lookup of provider-side IDs for region, type, image and kernel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.config import DriverConfig
from kitchen_linode.base.exceptions import ResourceNotFound
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import RetryPolicy, execute


@dataclass(frozen=True)
class ProviderResources:
    """IDs needed to create an instance. Resolved once per create."""

    region: str
    type: str
    image: str
    kernel: str


class ResourceResolver:
    """Confirms each configured name against the provider's listings.

    Every listing call runs under *policy* (transient errors only); a
    successful listing without a matching ID raises
    :class:`ResourceNotFound`, which is never retried.
    """

    def __init__(
        self,
        compute: ComputeBlueprint,
        policy: RetryPolicy,
        *,
        logger: DriverLogger = kl_logger,
    ) -> None:
        self.compute = compute
        self.policy = policy
        self.logger = logger

    def _find(
        self,
        kind: str,
        listing: Callable[[], list[dict[str, Any]]],
        wanted: str,
    ) -> str:
        items = execute(listing, self.policy)
        for item in items:
            if item.get("id") == wanted:
                self.logger.info(f"Got {kind}: {wanted}...", operation=f"resolve_{kind}")
                return wanted
        raise ResourceNotFound(f"No match for {kind}: {wanted}")

    def region(self, name: str) -> str:
        return self._find("region", self.compute.list_regions, name)

    def type(self, name: str) -> str:
        return self._find("type", self.compute.list_types, name)

    def image(self, name: str | None, platform_name: str) -> str:
        """Resolve *name*, or the orchestrator's platform name when unset."""
        return self._find("image", self.compute.list_images, name or platform_name)

    def kernel(self, name: str) -> str:
        return self._find("kernel", self.compute.list_kernels, name)

    def resolve(self, config: DriverConfig, platform_name: str) -> ProviderResources:
        return ProviderResources(
            region=self.region(config.region),
            type=self.type(config.type),
            image=self.image(config.image, platform_name),
            kernel=self.kernel(config.kernel),
        )
