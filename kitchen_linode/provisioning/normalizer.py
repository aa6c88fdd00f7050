"""Derive the final label, hostname, password and key paths for a create."""

from __future__ import annotations

import os
import secrets
import string
import time
from typing import Mapping

from kitchen_linode.base.config import DriverConfig
from kitchen_linode.base.exceptions import ConfigError

REQUIRED_OPTIONS = ("linode_token", "private_key_path", "public_key_path")

# Leaves room for the two-digit suffix added by generate_unique_label.
LABEL_PREFIX_MAX = 30

PASSWORD_ALPHABET = string.ascii_letters + string.digits
PASSWORD_LENGTH = 15


def job_name(config: DriverConfig, env: Mapping[str, str]) -> str:
    """Name of the CI job driving this run, for labelling."""
    # Under Jenkins kitchen_root is always "workspace".
    if env.get("JOB_NAME"):
        return env["JOB_NAME"]
    if env.get("GITHUB_JOB"):
        return env["GITHUB_JOB"]
    if config.kitchen_root:
        return os.path.basename(os.path.normpath(config.kitchen_root))
    return "job"


def derive_label(
    config: DriverConfig,
    instance_name: str,
    env: Mapping[str, str],
    now: int,
) -> str:
    if config.label:
        label = f"kitchen-{config.label}-{instance_name}-{now}"
    else:
        label = f"kitchen-{job_name(config, env)}-{instance_name}-{now}"
        label = label.replace(" ", "_").replace("/", "_")
    return label[:LABEL_PREFIX_MAX]


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _expand(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def normalize_config(
    config: DriverConfig,
    instance_name: str,
    *,
    env: Mapping[str, str] | None = None,
    now: int | None = None,
) -> DriverConfig:
    """Return a copy of *config* ready for a create.

    The copy always has ``label``, ``hostname``, ``password`` and both
    absolute key paths set. The input is left untouched, so normalizing
    the same config again yields a fresh timestamped label rather than a
    doubly-prefixed one.

    Args:
        config: Validated driver config.
        instance_name: Orchestrator instance name (e.g. ``default-ubuntu``).
        env: Environment to read CI job names from (defaults to ``os.environ``).
        now: Unix timestamp for the label (defaults to the current time).

    Raises:
        ConfigError: If a required option is missing.
    """
    missing = [name for name in REQUIRED_OPTIONS if not getattr(config, name)]
    if missing:
        raise ConfigError(f"Missing required config: {', '.join(missing)}")

    env = os.environ if env is None else env
    now = int(time.time()) if now is None else now

    label = derive_label(config, instance_name, env, now)
    private_key_path = _expand(config.private_key_path)  # type: ignore[arg-type]
    return config.model_copy(
        update={
            "label": label,
            "hostname": config.hostname or label or instance_name,
            "password": config.password or generate_password(),
            "private_key_path": private_key_path,
            "public_key_path": _expand(config.public_key_path or f"{private_key_path}.pub"),
        }
    )
