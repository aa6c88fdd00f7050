"""Linode API and SSH implementations of the capability blueprints."""

from .compute import LinodeCompute
from .ssh import ParamikoShell

__all__ = ["LinodeCompute", "ParamikoShell"]
