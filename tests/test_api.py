"""Unit tests for the platform API client."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from pyfaas.api import FaasClient
from pyfaas.exceptions import (
    ErrorKind,
    FaasAPIError,
    FaasAuthenticationError,
    FaasConfigError,
    FaasNetworkError,
    FaasNotFoundError,
    FaasValidationError,
)
from pyfaas.models import FunctionState


def make_client(handler, **kwargs):
    """Create a client whose requests are answered by ``handler``."""
    kwargs.setdefault("retry_delay", 0)
    return FaasClient(
        token="test_token",
        account_id="123",
        api_url="https://faas.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def run(client, call):
    """Run ``call(client)`` on a fresh event loop and close the client."""

    async def _go():
        async with client:
            return await call(client)

    return asyncio.run(_go())


FUNCTION = {
    "uuid": "abc-123",
    "name": "greeter",
    "description": "Says hello",
    "state": "Productive",
    "eventId": "messaging_conversation_end",
    "manifest": {"code": "// hello", "environment": {"A": "1"}, "version": 4},
    "lastDeployment": {
        "uuid": "dep-1",
        "deploymentState": "successful",
        "createdAt": "2025-01-15T10:00:00.000Z",
        "deployedAt": "2025-01-15T10:01:00.000Z",
    },
}


class TestFaasClient:
    """Tests for FaasClient initialization."""

    def test_init_with_credentials(self):
        """Test client initialization with token and account id."""
        client = FaasClient(token="t", account_id="42", api_url="https://faas.test/")
        assert client.token == "t"
        assert client.base_url == "https://faas.test/api/account/42"

    def test_init_without_token_raises_error(self):
        """Test that a missing token raises a config error."""
        with patch("pyfaas.api.config") as mock_config:
            mock_config.token = None
            mock_config.account_id = "42"
            with pytest.raises(FaasConfigError, match="Token not configured"):
                FaasClient(token=None, account_id="42", api_url="https://faas.test")

    def test_init_without_account_raises_error(self):
        """Test that a missing account id raises a config error."""
        with patch("pyfaas.api.config") as mock_config:
            mock_config.account_id = None
            with pytest.raises(FaasConfigError) as exc_info:
                FaasClient(token="t", account_id=None, api_url="https://faas.test")
        assert exc_info.value.kind == ErrorKind.LOCAL_CONFIG

    def test_authorization_header(self):
        """Test that requests carry the bearer token."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[])

        run(make_client(handler), lambda c: c.list_all())
        assert seen["auth"] == "Bearer test_token"


class TestRequest:
    """Tests for the _request method."""

    def test_query_contains_version_and_user(self):
        """Test that v=1 and userId are always sent."""
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler, user_id="user-7")
        result = run(client, lambda c: c._request("GET", "/functions"))
        assert result == {"ok": True}
        assert seen["params"] == {"v": "1", "userId": "user-7"}

    def test_not_modified_returns_none(self):
        """Test that 304 is reported as None."""
        client = make_client(lambda request: httpx.Response(304))
        assert run(client, lambda c: c._request("PUT", "/functions/x")) is None

    def test_empty_response(self):
        """Test handling of an empty body."""
        client = make_client(lambda request: httpx.Response(204))
        assert run(client, lambda c: c._request("POST", "/deployments/x")) == {}

    def test_html_response_raises_error(self):
        """Test that an HTML body raises an authentication error."""
        client = make_client(
            lambda request: httpx.Response(
                200, text="<html></html>", headers={"Content-Type": "text/html"}
            )
        )
        with pytest.raises(FaasAuthenticationError, match="HTML"):
            run(client, lambda c: c._request("GET", "/functions"))

    def test_unauthorized(self):
        """Test that 401 maps to an authentication error."""
        client = make_client(lambda request: httpx.Response(401, json={}))
        with pytest.raises(FaasAuthenticationError, match="not authorized"):
            run(client, lambda c: c._request("GET", "/functions"))

    def test_not_found(self):
        """Test that 404 maps to a not found error."""
        client = make_client(
            lambda request: httpx.Response(404, json={"errorMsg": "No such function"})
        )
        with pytest.raises(FaasNotFoundError, match="No such function") as exc_info:
            run(client, lambda c: c._request("GET", "/functions/x"))
        assert exc_info.value.kind == ErrorKind.NOT_FOUND_ON_PLATFORM

    def test_validation_error_uses_known_message(self):
        """Test that validation codes get a friendly message."""
        body = {
            "errorCode": "com.liveperson.faas.fm.validation.invalid-syntax",
            "errorMsg": "SyntaxError: Unexpected token",
        }
        client = make_client(lambda request: httpx.Response(400, json=body))
        with pytest.raises(FaasValidationError, match="Invalid Syntax") as exc_info:
            run(client, lambda c: c._request("PUT", "/functions/x/manifest"))
        assert exc_info.value.error_code == body["errorCode"]
        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILURE

    def test_server_error_is_retried(self):
        """Test that 5xx responses are retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, json={})
            return httpx.Response(200, json={"ok": True})

        result = run(make_client(handler), lambda c: c._request("GET", "/functions"))
        assert result == {"ok": True}
        assert len(calls) == 3

    def test_server_error_after_retries(self):
        """Test that a persistent 5xx raises after max retries."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"errorMsg": "boom"})

        client = make_client(handler, max_retries=2)
        with pytest.raises(FaasAPIError, match="status 500"):
            run(client, lambda c: c._request("GET", "/functions"))
        assert len(calls) == 3

    def test_rate_limit_honours_retry_after(self):
        """Test that 429 is retried using the Retry-After header."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, headers={"Retry-After": "0"})
            return httpx.Response(200, json=[])

        assert run(make_client(handler), lambda c: c._request("GET", "/f")) == []
        assert len(calls) == 2

    def test_client_errors_are_not_retried(self):
        """Test that 4xx responses are raised immediately."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, json={})

        with pytest.raises(FaasNotFoundError):
            run(make_client(handler), lambda c: c._request("GET", "/f"))
        assert len(calls) == 1

    def test_network_error(self):
        """Test that connection failures are retried and then raised."""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_retries=1)
        with pytest.raises(FaasNetworkError, match="Network error"):
            run(client, lambda c: c._request("GET", "/functions"))
        assert len(calls) == 2


class TestFunctionEndpoints:
    """Tests for the function and deployment endpoints."""

    def test_list_by_names_filters_exact_matches(self):
        """Test that only exactly matching names are returned."""
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["names"] = request.url.params["names"]
            return httpx.Response(
                200,
                json=[FUNCTION, {**FUNCTION, "uuid": "u2", "name": "greeter-old"}],
            )

        records = run(
            make_client(handler), lambda c: c.list_by_names(["greeter", "other"])
        )
        assert [r.name for r in records] == ["greeter"]
        assert seen["path"] == "/api/account/123/functions"
        assert seen["names"] == "greeter,other"

    def test_list_by_names_empty(self):
        """Test that no request is made for an empty name list."""

        def handler(request):
            raise AssertionError("unexpected request")

        assert run(make_client(handler), lambda c: c.list_by_names([])) == []

    def test_get_by_uuid_parses_record(self):
        """Test parsing of a single record, also when wrapped in a list."""
        client = make_client(lambda request: httpx.Response(200, json=[FUNCTION]))
        record = run(client, lambda c: c.get_by_uuid("abc-123"))
        assert record.uuid == "abc-123"
        assert record.state == FunctionState.PRODUCTIVE
        assert record.is_deployed
        assert record.manifest.version == 4
        assert record.event_id == "messaging_conversation_end"

    def test_create_function_sends_body(self):
        """Test that the create body is sent as JSON."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=FUNCTION)

        body = {"name": "greeter", "manifest": {"version": -1}}
        record = run(make_client(handler), lambda c: c.create_function(body))
        assert seen["method"] == "POST"
        assert seen["body"] == body
        assert record.name == "greeter"

    def test_update_manifest_not_modified(self):
        """Test that a skipped manifest update returns False."""
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(304)

        updated = run(
            make_client(handler),
            lambda c: c.update_function_manifest("abc-123", {"version": 4}),
        )
        assert updated is False
        assert seen["path"].endswith("/functions/abc-123/manifest")

    def test_update_meta(self):
        """Test metadata update returning the record, or None on 304."""
        client = make_client(lambda request: httpx.Response(200, json=FUNCTION))
        record = run(
            client, lambda c: c.update_function_meta("abc-123", {"state": "Modified"})
        )
        assert record.uuid == "abc-123"

        client = make_client(lambda request: httpx.Response(304))
        assert (
            run(client, lambda c: c.update_function_meta("abc-123", {"state": "Draft"}))
            is None
        )

    def test_deploy_started(self):
        """Test a deployment that was accepted."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(202, json={"message": "Deployment started"})

        response = run(make_client(handler), lambda c: c.deploy("abc-123"))
        assert seen == {
            "method": "POST",
            "path": "/api/account/123/deployments/abc-123",
        }
        assert response.message == "Deployment started"
        assert not response.in_progress

    def test_deploy_already_in_progress(self):
        """Test that 409 is reported in the response instead of raising."""
        client = make_client(
            lambda request: httpx.Response(
                409, json={"errorMsg": "Deployment already in progress"}
            )
        )
        response = run(client, lambda c: c.deploy("abc-123"))
        assert response.in_progress
        assert response.uuid == "abc-123"
        assert response.message == "Deployment already in progress"

    def test_undeploy_uses_delete(self):
        """Test that undeploy issues a DELETE."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            return httpx.Response(200, json={"message": "Undeployment started"})

        response = run(make_client(handler), lambda c: c.undeploy("abc-123"))
        assert seen["method"] == "DELETE"
        assert response.message == "Undeployment started"
