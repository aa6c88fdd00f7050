"""Controller factory.

Provides :func:`build_controller`, the single entry-point that turns a
raw config mapping into a :class:`LifecycleController` wired to the
Linode API and paramiko.
"""

from typing import Any

from kitchen_linode.base.config import validate_config
from kitchen_linode.linode.compute import LinodeCompute
from kitchen_linode.linode.ssh import ParamikoShell
from kitchen_linode.provisioning.lifecycle import LifecycleController


def build_controller(
    config: dict[str, Any],
    instance_name: str,
    platform_name: str,
    *,
    posix_shell: bool = True,
) -> LifecycleController:
    """
    Build a lifecycle controller for one orchestrator instance.
    Args:
        config: Raw driver options (see :class:`~kitchen_linode.base.config.DriverConfig`).
        instance_name: Orchestrator instance name (e.g. 'default-ubuntu').
        platform_name: Orchestrator platform name, used as the default image.
        posix_shell: Whether to run the SSH bootstrap after boot.
    Returns:
        A controller with ``create`` and ``destroy``.
    Raises:
        pydantic.ValidationError: If the config is invalid.
    """
    driver_config = validate_config(config)
    compute = LinodeCompute(driver_config.linode_token or "")
    return LifecycleController(
        driver_config,
        compute,
        ParamikoShell(),
        instance_name=instance_name,
        platform_name=platform_name,
        posix_shell=posix_shell,
    )
