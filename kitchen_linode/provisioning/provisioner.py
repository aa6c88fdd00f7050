"""Instance creation under nested retry.

The outer loop reacts only to label conflicts: it retries at once,
drawing a fresh label each time. The inner loop retries the create call
itself on transient API errors with exponential backoff.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.config import DriverConfig
from kitchen_linode.base.exceptions import BadRequest
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import Outcome, RetryPolicy, default_policy, execute
from kitchen_linode.provisioning.labels import generate_unique_label
from kitchen_linode.provisioning.resolver import ProviderResources, ResourceResolver

UNIQUE_LABEL_MESSAGE = "Label must be unique"


@dataclass(frozen=True)
class ProvisionedInstance:
    """Identity of a freshly created instance."""

    instance_id: int
    label: str
    ipv4: str | None
    kernel: str


def classify_create_error(exc: Exception) -> Outcome:
    """``CONFLICT`` for a duplicate-label rejection, ``FATAL`` for anything else."""
    if isinstance(exc, BadRequest) and UNIQUE_LABEL_MESSAGE in exc.body:
        return Outcome.CONFLICT
    return Outcome.FATAL


class ServerProvisioner:
    """Resolves resources, picks a label and creates the instance.

    Attributes:
        policy: Transient-error policy for individual API calls.
        conflict_policy: Outer policy; retries label conflicts without sleeping.
    """

    def __init__(
        self,
        compute: ComputeBlueprint,
        config: DriverConfig,
        *,
        platform_name: str,
        sleep: Callable[[float], None] = time.sleep,
        logger: DriverLogger = kl_logger,
        rng: random.Random | None = None,
    ) -> None:
        self.compute = compute
        self.config = config
        self.platform_name = platform_name
        self.logger = logger
        self.rng = rng
        self.policy = default_policy(config.api_retries, sleep=sleep, logger=logger)
        self.conflict_policy = RetryPolicy(
            max_attempts=config.api_retries,
            retry_on=(),
            classifier=classify_create_error,
            on_retry=self._log_conflict,
            sleep=sleep,
        )
        self.resolver = ResourceResolver(compute, self.policy, logger=logger)

    def _log_conflict(self, number: int, exc: Exception) -> None:
        self.logger.info(
            f"Got [{type(exc).__name__}] due to non-unique label when creating server.",
            operation="create_instance",
        )
        self.logger.info("Will try again with a new label if we can.", operation="create_instance")

    def _create_with_fresh_label(self, resources: ProviderResources) -> dict[str, Any]:
        label = generate_unique_label(
            self.compute,
            self.config.label or "",
            self.policy,
            logger=self.logger,
            rng=self.rng,
        )
        self.logger.info(f"Creating Linode - {label}", label=label, operation="create_instance")
        create = partial(
            self.compute.create_instance,
            region=resources.region,
            type=resources.type,
            label=label,
            image=resources.image,
            username=self.config.username,
            root_password=self.config.password or "",
        )
        return execute(create, self.policy)

    def provision(self) -> ProvisionedInstance:
        """Create the instance and return its identity.

        Raises:
            ResourceNotFound: If a configured region/type/image/kernel does not exist.
            LabelExhausted: If no free label is left for the prefix.
            BadRequest: For any rejection other than a duplicate label, or
                the last duplicate-label rejection once retries run out.
            ProviderError: When transient errors outlast the retry budget.
        """
        resources = self.resolver.resolve(self.config, self.platform_name)
        instance = execute(partial(self._create_with_fresh_label, resources), self.conflict_policy)
        addresses = instance.get("ipv4") or []
        return ProvisionedInstance(
            instance_id=instance["id"],
            label=instance["label"],
            ipv4=addresses[0] if addresses else None,
            kernel=resources.kernel,
        )
