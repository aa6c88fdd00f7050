"""Create / destroy entry points called by the test orchestrator.

The orchestrator owns the state mapping and persists it between runs.
The controller only ever moves it between two shapes:

- absent: none of :data:`STATE_KEYS` present;
- created: ``instance_id`` present (written first), plus label, address
  and, once SSH bootstrap starts, the private key path.

``instance_id`` alone decides whether ``create`` provisions anything.
"""

from __future__ import annotations

import time
from functools import partial
from typing import Any, Callable, Mapping, MutableMapping

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.config import DriverConfig
from kitchen_linode.base.exceptions import (
    ActionFailed,
    KitchenLinodeError,
    NotFound,
    ProviderError,
    ProvisionFailed,
)
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import default_policy, execute
from kitchen_linode.base.shell import ShellBlueprint
from kitchen_linode.provisioning.boot import boot_instance, wait_until_running
from kitchen_linode.provisioning.bootstrap import SSHBootstrapper
from kitchen_linode.provisioning.normalizer import normalize_config
from kitchen_linode.provisioning.provisioner import ServerProvisioner

STATE_KEYS = ("instance_id", "instance_label", "hostname", "ssh_key_path")


class LifecycleController:
    """Sequences normalization, provisioning, boot and SSH bootstrap.

    Attributes:
        config: Validated, not yet normalized driver config.
        compute: Provider capability.
        shell: Remote shell capability.
        instance_name: Orchestrator instance name (e.g. ``default-ubuntu``).
        platform_name: Orchestrator platform name; the image fallback.
        posix_shell: Whether the platform speaks a Bourne-style shell.
            SSH bootstrap is skipped otherwise.
    """

    def __init__(
        self,
        config: DriverConfig,
        compute: ComputeBlueprint,
        shell: ShellBlueprint,
        *,
        instance_name: str,
        platform_name: str,
        posix_shell: bool = True,
        env: Mapping[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: DriverLogger = kl_logger,
    ) -> None:
        self.config = config
        self.compute = compute
        self.shell = shell
        self.instance_name = instance_name
        self.platform_name = platform_name
        self.posix_shell = posix_shell
        self.env = env
        self.sleep = sleep
        self.logger = logger

    def _describe(self, state: Mapping[str, Any]) -> str:
        return f"Linode <{state.get('instance_id')}, {state.get('instance_label')}>"

    def create(self, state: MutableMapping[str, Any]) -> None:
        """Provision the instance recorded by *state*, unless one already is.

        An existing ``instance_id`` short-circuits the call without
        re-checking boot or SSH bootstrap. Once the instance exists its id
        is in *state* before any later step can fail, so ``destroy`` can
        always clean up.

        Raises:
            ProvisionFailed: Wrapping any driver error, with the original
                as ``__cause__``.
        """
        logger = self.logger.bind(instance=self.instance_name)
        try:
            self._create(state, logger)
        except KitchenLinodeError as ex:
            logger.error(
                f"Failed to create server: {type(ex).__name__} - {ex}",
                label=state.get("instance_label"),
                operation="create",
            )
            raise ProvisionFailed(str(ex)) from ex

    def _create(self, state: MutableMapping[str, Any], logger: DriverLogger) -> None:
        config = normalize_config(self.config, self.instance_name, env=self.env)

        if state.get("instance_id") is not None:
            logger.info(f"{self._describe(state)} already exists.", operation="create")
            return

        provisioner = ServerProvisioner(
            self.compute,
            config,
            platform_name=self.platform_name,
            sleep=self.sleep,
            logger=logger,
        )
        server = provisioner.provision()

        state["instance_id"] = server.instance_id
        state["instance_label"] = server.label
        state["hostname"] = server.ipv4
        logger = logger.bind(label=server.label)
        logger.info(f"{self._describe(state)} created.", operation="create")

        policy = default_policy(config.api_retries, sleep=self.sleep, logger=logger)
        boot_instance(self.compute, server.instance_id, server.kernel, policy, logger=logger)
        wait_until_running(self.compute, server.instance_id, logger=logger)
        logger.info(f"{self._describe(state)} ready.", operation="create")

        if not self.posix_shell:
            return
        if not server.ipv4:
            raise ProviderError(f"{self._describe(state)} has no public IPv4 address")
        state["ssh_key_path"] = config.private_key_path
        SSHBootstrapper(self.shell, config, sleep=self.sleep, logger=logger).bootstrap(
            server.ipv4
        )

    def _delete(self, instance_id: int) -> None:
        server = self.compute.get_instance(instance_id)
        self.compute.delete_instance(server["id"])

    def destroy(self, state: MutableMapping[str, Any]) -> None:
        """Delete the instance recorded by *state* and clear the record.

        An instance that is already gone counts as destroyed.

        Raises:
            ActionFailed: If the API keeps failing; *state* is left as is.
        """
        instance_id = state.get("instance_id")
        if instance_id is None:
            return

        logger = self.logger.bind(instance=self.instance_name, label=state.get("instance_label"))
        policy = default_policy(self.config.api_retries, sleep=self.sleep, logger=logger)
        try:
            execute(partial(self._delete, instance_id), policy)
            logger.info(f"{self._describe(state)} destroyed.", operation="destroy")
        except NotFound:
            logger.info(f"{self._describe(state)} not found.", operation="destroy")
        except ProviderError as ex:
            logger.error(
                f"Failed to destroy server: {type(ex).__name__} - {ex}",
                operation="destroy",
            )
            raise ActionFailed(str(ex)) from ex

        for key in STATE_KEYS:
            state.pop(key, None)
