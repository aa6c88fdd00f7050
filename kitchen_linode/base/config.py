"""
Pydantic configuration model for the Linode driver.

Validates driver options at load time instead of silently passing bad
values to the API. The model is frozen: normalization produces a new
instance via :meth:`~pydantic.BaseModel.model_copy`.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Conventional private keys, in lookup order.
DEFAULT_KEY_NAMES = ("id_rsa", "id_ed25519", "id_ecdsa")


def default_private_key_path() -> str | None:
    """Return the first conventional private key under ``~/.ssh`` that exists."""
    for name in DEFAULT_KEY_NAMES:
        path = os.path.expanduser(os.path.join("~", ".ssh", name))
        if os.path.exists(path):
            return path
    return None


class DriverConfig(BaseModel):
    """Options recognized by the Linode driver.

    Values are resolved in order:
    1. Explicit values passed in the config dict.
    2. ``LINODE_TOKEN`` for the API token.
    3. Conventional key files under ``~/.ssh`` for the private key, and
       ``<private_key_path>.pub`` for the public key.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    linode_token: str | None = Field(default=None, description="Linode API v4 personal access token")
    username: str = Field(default="root", description="Login user on the instance")
    password: str | None = Field(default=None, description="Root password; generated if unset")
    label: str | None = Field(default=None, description="Label prefix for the instance")
    hostname: str | None = Field(default=None, description="Hostname set on the instance")
    image: str | None = Field(default=None, description="Image ID; defaults to the platform name")
    region: str = Field(default="us-east", description="Region ID")
    type: str = Field(default="g6-nanode-1", description="Instance type ID")
    kernel: str = Field(default="linode/grub2", description="Boot kernel ID")
    api_retries: int = Field(default=5, ge=1, description="Attempts per API call")
    sudo: bool = Field(default=True, description="Use sudo for privileged commands as non-root")
    ssh_timeout: int = Field(default=600, gt=0, description="SSH connect timeout in seconds")
    private_key_path: str | None = Field(default=None, description="Private SSH key file")
    public_key_path: str | None = Field(default=None, description="Public SSH key file")
    kitchen_root: str | None = Field(default=None, description="Orchestrator workspace directory")

    @model_validator(mode="before")
    @classmethod
    def resolve_defaults(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to the environment and conventional key files."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if not values.get("linode_token"):
            values["linode_token"] = os.environ.get("LINODE_TOKEN")
        if not values.get("private_key_path"):
            values["private_key_path"] = default_private_key_path()
        if not values.get("public_key_path") and values.get("private_key_path"):
            values["public_key_path"] = f"{values['private_key_path']}.pub"
        return values


def validate_config(config: dict[str, Any]) -> DriverConfig:
    """Validate and return a typed driver config.

    Args:
        config: Raw configuration dictionary.

    Returns:
        A validated, frozen :class:`DriverConfig`.

    Raises:
        pydantic.ValidationError: If an option is unknown or invalid.
    """
    return DriverConfig(**config)


__all__ = [
    "DEFAULT_KEY_NAMES",
    "DriverConfig",
    "default_private_key_path",
    "validate_config",
]
