"""
kitchen-linode exception hierarchy.

Every error raised by the driver inherits from :class:`KitchenLinodeError`.
Provider errors are classified by HTTP outcome so retry policies can
match on type, operator errors are terminal, and the orchestrator only
ever has to catch :class:`ActionFailed`.
"""

from __future__ import annotations


# ── Base ──────────────────────────────────────────────────────────────
class KitchenLinodeError(Exception):
    """Root exception for all kitchen-linode errors."""


# ── Provider API ──────────────────────────────────────────────────────
class ProviderError(KitchenLinodeError):
    """Base exception for Linode API failures.

    Attributes:
        status: HTTP status code, or ``None`` for transport failures.
        body: Raw response body text (may be empty).
    """

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ApiTimeout(ProviderError):
    """Socket-level timeout talking to the API."""


class RequestTimeout(ProviderError):
    """API answered 408 Request Timeout."""


class RateLimited(ProviderError):
    """API answered 429 Too Many Requests."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: int = 0,
        status: int | None = 429,
        body: str = "",
    ) -> None:
        super().__init__(message, status=status, body=body)
        self.retry_after = retry_after


class BadRequest(ProviderError):
    """API answered 400 Bad Request; ``body`` holds the error payload."""


class NotFound(ProviderError):
    """Requested resource does not exist."""


class WaitTimeout(ProviderError):
    """Instance did not reach the expected status in time."""


# ── Operator errors ───────────────────────────────────────────────────
class UserError(KitchenLinodeError):
    """Terminal error caused by configuration or account state."""


class ConfigError(UserError):
    """Required configuration is missing or invalid."""


class ResourceNotFound(UserError):
    """No region / type / image / kernel matches the configured name."""


class LabelExhausted(UserError):
    """Every suffix for a label prefix is already taken."""


# ── Shell transport ───────────────────────────────────────────────────
class ShellError(KitchenLinodeError):
    """SSH connection failed or a remote command exited non-zero."""


# ── Caller-facing ─────────────────────────────────────────────────────
class ActionFailed(KitchenLinodeError):
    """A create or destroy action could not be completed."""


class ProvisionFailed(ActionFailed):
    """Creating the instance failed; ``__cause__`` holds the original error."""
