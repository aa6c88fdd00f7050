"""Boot a new instance and wait for it to come up."""

from __future__ import annotations

from functools import partial
from typing import Any

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import RetryPolicy, execute

RUNNING = "running"


def boot_instance(
    compute: ComputeBlueprint,
    instance_id: int,
    kernel: str,
    policy: RetryPolicy,
    *,
    logger: DriverLogger = kl_logger,
) -> None:
    """Select the boot kernel and power the instance on, retrying transient errors."""
    logger.info(f"Booting linode with kernel {kernel}...", operation="boot")
    execute(partial(compute.boot_instance, instance_id, kernel), policy)


def wait_until_running(
    compute: ComputeBlueprint,
    instance_id: int,
    *,
    logger: DriverLogger = kl_logger,
) -> dict[str, Any]:
    """Block until the instance is running; cadence and timeout belong to *compute*."""
    logger.info("Waiting for linode to boot...", operation="wait_for_boot")
    return compute.wait_for_status(instance_id, RUNNING)
