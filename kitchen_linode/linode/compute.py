"""Linode API v4 implementation of the Compute blueprint."""

from __future__ import annotations

import time
from typing import Any, Callable, NoReturn

import requests

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.exceptions import (
    ApiTimeout,
    BadRequest,
    NotFound,
    ProviderError,
    RateLimited,
    RequestTimeout,
    WaitTimeout,
)

API_BASE = "https://api.linode.com/v4"
HTTP_TIMEOUT = 30

_ERROR_MAP: dict[int, type[ProviderError]] = {
    400: BadRequest,
    404: NotFound,
    408: RequestTimeout,
}


def _retry_after(headers: Any) -> int:
    try:
        return int(headers.get("Retry-After", 0))
    except (TypeError, ValueError):
        return 0


def _handle(resp: requests.Response, msg: str) -> NoReturn:
    status = resp.status_code
    body = resp.text or ""
    if status == 429:
        raise RateLimited(
            f"{msg}: HTTP 429",
            retry_after=_retry_after(resp.headers),
            body=body,
        )
    exc = _ERROR_MAP.get(status, ProviderError)
    raise exc(f"{msg}: HTTP {status} {body}".rstrip(), status=status, body=body)


class LinodeCompute(ComputeBlueprint):
    """Linode compute service.

    Attributes:
        session: Authenticated :class:`requests.Session`.
        poll_interval: Seconds between status polls in :meth:`wait_for_status`.
        wait_timeout: Seconds before :meth:`wait_for_status` gives up.
    """

    def __init__(
        self,
        token: str,
        *,
        api_base: str = API_BASE,
        poll_interval: float = 5.0,
        wait_timeout: float = 600.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the API session.

        Args:
            token: Linode personal access token.
            api_base: API root URL.
            poll_interval: Seconds between status polls.
            wait_timeout: Seconds to wait for a status before failing.
            sleep: Blocking sleep used between polls.
            clock: Monotonic clock used for the wait deadline.
        """
        self.api_base = api_base.rstrip("/")
        self.poll_interval = poll_interval
        self.wait_timeout = wait_timeout
        self._sleep = sleep
        self._clock = clock
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        msg: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            resp = self.session.request(
                method,
                f"{self.api_base}{path}",
                json=json,
                params=params,
                timeout=HTTP_TIMEOUT,
            )
        except requests.Timeout as e:
            raise ApiTimeout(f"{msg}: {e}") from e
        except requests.RequestException as e:
            raise ProviderError(f"{msg}: {e}") from e
        if resp.status_code >= 400:
            _handle(resp, msg)
        if not resp.text:
            return {}
        return resp.json()

    def _list(self, path: str, msg: str) -> list[dict[str, Any]]:
        """Collect every page of a paginated collection."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            data = self._request("GET", path, msg, params={"page": page})
            items.extend(data.get("data", []))
            if page >= data.get("pages", 1):
                return items
            page += 1

    def list_regions(self) -> list[dict[str, Any]]:
        return self._list("/regions", "Failed to list regions")

    def list_types(self) -> list[dict[str, Any]]:
        return self._list("/linode/types", "Failed to list types")

    def list_images(self) -> list[dict[str, Any]]:
        return self._list("/images", "Failed to list images")

    def list_kernels(self) -> list[dict[str, Any]]:
        return self._list("/linode/kernels", "Failed to list kernels")

    def list_instances(self) -> list[dict[str, Any]]:
        return self._list("/linode/instances", "Failed to list instances")

    def create_instance(
        self,
        region: str,
        type: str,
        label: str,
        image: str,
        username: str,
        root_password: str,
    ) -> dict[str, Any]:
        """Create a Linode without booting it.

        API v4 always deploys images for ``root``; *username* only matters
        to the SSH bootstrap.

        Raises:
            BadRequest: E.g. when the label is already taken.
        """
        payload = {
            "region": region,
            "type": type,
            "label": label,
            "image": image,
            "root_pass": root_password,
            "booted": False,
        }
        return self._request(  # type: ignore[no-any-return]
            "POST", "/linode/instances", f"Failed to create instance '{label}'", json=payload
        )

    def boot_instance(self, instance_id: int, kernel: str) -> None:
        """Point the first config profile at *kernel*, then boot the Linode."""
        configs = self._list(
            f"/linode/instances/{instance_id}/configs",
            f"Failed to list configs for instance '{instance_id}'",
        )
        if configs and configs[0].get("kernel") != kernel:
            self._request(
                "PUT",
                f"/linode/instances/{instance_id}/configs/{configs[0]['id']}",
                f"Failed to update config for instance '{instance_id}'",
                json={"kernel": kernel},
            )
        self._request(
            "POST",
            f"/linode/instances/{instance_id}/boot",
            f"Failed to boot instance '{instance_id}'",
            json={"config_id": configs[0]["id"]} if configs else None,
        )

    def get_instance(self, instance_id: int) -> dict[str, Any]:
        """Get a single Linode.

        Raises:
            NotFound: If the instance does not exist.
        """
        return self._request(  # type: ignore[no-any-return]
            "GET", f"/linode/instances/{instance_id}", f"Failed to get instance '{instance_id}'"
        )

    def delete_instance(self, instance_id: int) -> None:
        """Delete a Linode.

        Raises:
            NotFound: If the instance does not exist.
        """
        self._request(
            "DELETE",
            f"/linode/instances/{instance_id}",
            f"Failed to delete instance '{instance_id}'",
        )

    def wait_for_status(self, instance_id: int, status: str) -> dict[str, Any]:
        """Poll until the Linode reports *status*.

        Timeouts and rate limiting on a single poll do not end the wait; a
        ``Retry-After`` hint stretches the next pause.

        Raises:
            WaitTimeout: If ``wait_timeout`` seconds pass first.
        """
        deadline = self._clock() + self.wait_timeout
        while True:
            delay = self.poll_interval
            try:
                instance = self.get_instance(instance_id)
            except (ApiTimeout, RequestTimeout, RateLimited) as e:
                last_seen = type(e).__name__
                if isinstance(e, RateLimited):
                    delay = max(delay, e.retry_after)
            else:
                if instance.get("status") == status:
                    return instance
                last_seen = str(instance.get("status"))
            if self._clock() >= deadline:
                raise WaitTimeout(
                    f"Instance '{instance_id}' not '{status}' after "
                    f"{self.wait_timeout:.0f}s, last seen '{last_seen}'"
                )
            self._sleep(delay)
