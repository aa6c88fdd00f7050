"""Tests for the Linode API v4 Compute service."""

from unittest.mock import patch, MagicMock
import json
import pytest
import requests

from kitchen_linode.linode.compute import API_BASE, HTTP_TIMEOUT, LinodeCompute
from kitchen_linode.base.exceptions import (
    ApiTimeout,
    BadRequest,
    NotFound,
    ProviderError,
    RateLimited,
    RequestTimeout,
    WaitTimeout,
)


def _response(status: int = 200, payload=None, headers=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.text = json.dumps(payload) if payload is not None else ""
    resp.json.return_value = payload
    return resp


def _page(items, page=1, pages=1) -> MagicMock:
    return _response(payload={"data": items, "page": page, "pages": pages})


@pytest.fixture
def svc():
    with patch("kitchen_linode.linode.compute.requests.Session") as mock_session_cls:
        session = MagicMock()
        mock_session_cls.return_value = session
        sleep = MagicMock()
        instance = LinodeCompute("tok", poll_interval=2, wait_timeout=600, sleep=sleep)
        yield instance, session, sleep


# --- session ---

class TestSession:
    def test_bearer_token(self, svc):
        _, session, _ = svc
        headers = session.headers.update.call_args[0][0]
        assert headers["Authorization"] == "Bearer tok"

    def test_request_shape(self, svc):
        inst, session, _ = svc
        session.request.return_value = _page([])
        inst.list_regions()
        session.request.assert_called_once_with(
            "GET",
            f"{API_BASE}/regions",
            json=None,
            params={"page": 1},
            timeout=HTTP_TIMEOUT,
        )


# --- listings ---

class TestListings:
    def test_regions_paginated(self, svc):
        inst, session, _ = svc
        session.request.side_effect = [
            _page([{"id": "us-east"}], page=1, pages=2),
            _page([{"id": "eu-west"}], page=2, pages=2),
        ]
        result = inst.list_regions()
        assert [r["id"] for r in result] == ["us-east", "eu-west"]
        assert session.request.call_args_list[1][1]["params"] == {"page": 2}

    @pytest.mark.parametrize(
        "method, path",
        [
            ("list_types", "/linode/types"),
            ("list_images", "/images"),
            ("list_kernels", "/linode/kernels"),
            ("list_instances", "/linode/instances"),
        ],
    )
    def test_paths(self, svc, method, path):
        inst, session, _ = svc
        session.request.return_value = _page([{"id": "x"}])
        assert getattr(inst, method)() == [{"id": "x"}]
        assert session.request.call_args[0][1] == f"{API_BASE}{path}"

    def test_empty(self, svc):
        inst, session, _ = svc
        session.request.return_value = _page([])
        assert inst.list_instances() == []


# --- error classification ---

class TestErrors:
    def test_bad_request_keeps_body(self, svc):
        inst, session, _ = svc
        body = {"errors": [{"reason": "Label must be unique among your Linodes", "field": "label"}]}
        session.request.return_value = _response(400, body)
        with pytest.raises(BadRequest) as exc_info:
            inst.list_regions()
        assert "Label must be unique" in exc_info.value.body
        assert exc_info.value.status == 400

    def test_not_found(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(404, {"errors": [{"reason": "Not found"}]})
        with pytest.raises(NotFound):
            inst.get_instance(123)

    def test_request_timeout(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(408, {"errors": []})
        with pytest.raises(RequestTimeout):
            inst.list_types()

    def test_rate_limited(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(429, {"errors": []}, headers={"Retry-After": "7"})
        with pytest.raises(RateLimited) as exc_info:
            inst.list_images()
        assert exc_info.value.retry_after == 7

    def test_rate_limited_bad_header(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(429, None, headers={"Retry-After": "soon"})
        with pytest.raises(RateLimited) as exc_info:
            inst.list_images()
        assert exc_info.value.retry_after == 0

    def test_server_error_generic(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(500, {"errors": []})
        with pytest.raises(ProviderError) as exc_info:
            inst.list_kernels()
        assert type(exc_info.value) is ProviderError

    def test_socket_timeout(self, svc):
        inst, session, _ = svc
        session.request.side_effect = requests.ReadTimeout("read timed out")
        with pytest.raises(ApiTimeout):
            inst.list_regions()

    def test_connection_error(self, svc):
        inst, session, _ = svc
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderError):
            inst.list_regions()


# --- create_instance ---

class TestCreateInstance:
    def _create(self, inst):
        return inst.create_instance(
            region="us-east",
            type="g6-nanode-1",
            label="kitchen-job-default-17000042",
            image="linode/ubuntu22.04",
            username="root",
            root_password="s3cret",
        )

    def test_created_powered_off(self, svc):
        inst, session, _ = svc
        created = {"id": 42, "label": "kitchen-job-default-17000042", "ipv4": ["198.51.100.7"]}
        session.request.return_value = _response(200, created)
        assert self._create(inst) == created
        session.request.assert_called_once()
        post = session.request.call_args
        assert post[0] == ("POST", f"{API_BASE}/linode/instances")
        assert post[1]["json"] == {
            "region": "us-east",
            "type": "g6-nanode-1",
            "label": "kitchen-job-default-17000042",
            "image": "linode/ubuntu22.04",
            "root_pass": "s3cret",
            "booted": False,
        }

    def test_label_conflict(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(
            400, {"errors": [{"reason": "Label must be unique among your Linodes"}]}
        )
        with pytest.raises(BadRequest):
            self._create(inst)


# --- boot_instance ---

class TestBootInstance:
    def test_success_kernel_already_set(self, svc):
        inst, session, _ = svc
        session.request.side_effect = [
            _page([{"id": 7, "kernel": "linode/grub2"}]),
            _response(200, {}),
        ]
        assert inst.boot_instance(42, "linode/grub2") is None
        calls = [c[0] for c in session.request.call_args_list]
        assert calls == [
            ("GET", f"{API_BASE}/linode/instances/42/configs"),
            ("POST", f"{API_BASE}/linode/instances/42/boot"),
        ]
        assert session.request.call_args_list[1][1]["json"] == {"config_id": 7}

    def test_updates_kernel(self, svc):
        inst, session, _ = svc
        session.request.side_effect = [
            _page([{"id": 7, "kernel": "linode/grub2"}]),
            _response(200, {"id": 7, "kernel": "linode/latest-64bit"}),
            _response(200, {}),
        ]
        inst.boot_instance(42, "linode/latest-64bit")
        calls = session.request.call_args_list
        assert [c[0][0] for c in calls] == ["GET", "PUT", "POST"]
        assert calls[1][0][1] == f"{API_BASE}/linode/instances/42/configs/7"
        assert calls[1][1]["json"] == {"kernel": "linode/latest-64bit"}
        assert calls[2][0][1] == f"{API_BASE}/linode/instances/42/boot"

    def test_no_config_profile(self, svc):
        inst, session, _ = svc
        session.request.side_effect = [_page([]), _response(200, {})]
        inst.boot_instance(42, "linode/grub2")
        boot = session.request.call_args_list[1]
        assert boot[0] == ("POST", f"{API_BASE}/linode/instances/42/boot")
        assert boot[1]["json"] is None

    def test_kernel_update_timeout(self, svc):
        inst, session, _ = svc
        session.request.side_effect = [
            _page([{"id": 7, "kernel": "linode/grub2"}]),
            requests.ReadTimeout("slow"),
        ]
        with pytest.raises(ApiTimeout):
            inst.boot_instance(42, "linode/latest-64bit")
        assert session.request.call_count == 2


# --- get / delete ---

class TestGetDelete:
    def test_get(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(200, {"id": 42, "status": "running"})
        assert inst.get_instance(42)["status"] == "running"
        assert session.request.call_args[0] == ("GET", f"{API_BASE}/linode/instances/42")

    def test_delete(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(200, None)
        assert inst.delete_instance(42) is None
        assert session.request.call_args[0] == ("DELETE", f"{API_BASE}/linode/instances/42")

    def test_delete_not_found(self, svc):
        inst, session, _ = svc
        session.request.return_value = _response(404, {"errors": [{"reason": "Not found"}]})
        with pytest.raises(NotFound):
            inst.delete_instance(42)


# --- wait_for_status ---

class TestWaitForStatus:
    def test_polls_until_running(self, svc):
        inst, session, sleep = svc
        session.request.side_effect = [
            _response(200, {"id": 42, "status": "provisioning"}),
            _response(200, {"id": 42, "status": "booting"}),
            _response(200, {"id": 42, "status": "running"}),
        ]
        assert inst.wait_for_status(42, "running")["status"] == "running"
        assert sleep.call_count == 2
        sleep.assert_called_with(2)

    def test_timeout(self, svc):
        inst, session, sleep = svc
        inst._clock = MagicMock(side_effect=[0, 100, 700])
        session.request.return_value = _response(200, {"id": 42, "status": "booting"})
        with pytest.raises(WaitTimeout):
            inst.wait_for_status(42, "running")
        sleep.assert_called_once_with(2)

    def test_transient_poll_error_keeps_waiting(self, svc):
        inst, session, sleep = svc
        session.request.side_effect = [
            _response(200, {"id": 42, "status": "booting"}),
            requests.ReadTimeout("read timed out"),
            _response(200, {"id": 42, "status": "running"}),
        ]
        assert inst.wait_for_status(42, "running") == {"id": 42, "status": "running"}
        assert [c.args[0] for c in sleep.call_args_list] == [2, 2]

    def test_rate_limited_poll_honors_retry_after(self, svc):
        inst, session, sleep = svc
        session.request.side_effect = [
            _response(429, {"errors": []}, headers={"Retry-After": "9"}),
            _response(408, {"errors": []}),
            _response(200, {"id": 42, "status": "running"}),
        ]
        assert inst.wait_for_status(42, "running")["status"] == "running"
        assert [c.args[0] for c in sleep.call_args_list] == [9, 2]

    def test_timeout_while_erroring(self, svc):
        inst, session, sleep = svc
        inst._clock = MagicMock(side_effect=[0, 100, 700])
        session.request.side_effect = requests.ReadTimeout("read timed out")
        with pytest.raises(WaitTimeout, match="ApiTimeout"):
            inst.wait_for_status(42, "running")
        sleep.assert_called_once_with(2)

    def test_not_found_is_not_swallowed(self, svc):
        inst, session, sleep = svc
        session.request.return_value = _response(404, {"errors": [{"reason": "Not found"}]})
        with pytest.raises(NotFound):
            inst.wait_for_status(42, "running")
        sleep.assert_not_called()
