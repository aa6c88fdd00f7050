"""kitchen-linode — Linode instances for test-orchestrator runs.

Entry point for the library. Import :func:`build_controller` to get a
controller for one instance::

    from kitchen_linode import build_controller

    controller = build_controller({"region": "us-east"}, "default-ubuntu", "linode/ubuntu22.04")
    state = {}
    controller.create(state)
    ...
    controller.destroy(state)
"""

from .base import ComputeBlueprint, DriverConfig, ShellBlueprint
from .base.exceptions import ActionFailed, ProvisionFailed
from .factory import build_controller
from .provisioning import STATE_KEYS, LifecycleController

__all__ = [
    "ActionFailed",
    "ComputeBlueprint",
    "DriverConfig",
    "LifecycleController",
    "ProvisionFailed",
    "STATE_KEYS",
    "ShellBlueprint",
    "build_controller",
]
