"""Capability blueprints and core utilities.

The provisioning core talks to the provider and the remote shell only
through the blueprints defined here.
"""

from .compute import ComputeBlueprint
from .config import DriverConfig, validate_config
from .retry import Outcome, RetryPolicy, default_policy, execute
from .shell import ShellBlueprint, ShellSession


__all__ = [
    "ComputeBlueprint",
    "DriverConfig",
    "Outcome",
    "RetryPolicy",
    "ShellBlueprint",
    "ShellSession",
    "default_policy",
    "execute",
    "validate_config",
]
