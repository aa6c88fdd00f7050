"""Instance lifecycle: provisioning, boot and SSH bootstrap."""

from .lifecycle import STATE_KEYS, LifecycleController

__all__ = ["STATE_KEYS", "LifecycleController"]
