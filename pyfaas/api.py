"""API client for the functions platform."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx

from .config import config
from .exceptions import (
    ERROR_MESSAGES,
    FaasAPIError,
    FaasAuthenticationError,
    FaasConfigError,
    FaasConflictError,
    FaasInvalidResponseError,
    FaasNetworkError,
    FaasNotFoundError,
    FaasPermissionError,
    FaasRateLimitError,
    FaasValidationError,
)
from .models import DeploymentResponse, RemoteFunctionRecord
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)


class FaasClient:
    """Asynchronous client for the functions platform API.

    One client is created per command invocation and passed to every
    component that talks to the platform. Use it as an async context
    manager or call :meth:`close` when done.
    """

    def __init__(
        self,
        token: str | None = None,
        account_id: str | None = None,
        api_url: str | None = None,
        user_id: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the platform client.

        Args:
            token: Bearer token (uses config if not provided)
            account_id: Account id (uses config if not provided)
            api_url: API base URL (uses config if not provided)
            user_id: Optional user id sent as query parameter
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport, mainly for tests
        """
        self.token = token or config.token
        self.account_id = account_id or config.account_id
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.user_id = user_id or config.user_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.token:
            raise FaasConfigError(
                "Token not configured. Please set the FAAS_TOKEN environment variable."
            )
        if not self.account_id:
            raise FaasConfigError(
                "Account id not configured. "
                "Please set the FAAS_ACCOUNT_ID environment variable."
            )

        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return f"{self.api_url}/api/account/{self.account_id}"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                    "User-Agent": "pyfaas",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> FaasClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _extract_error(response: httpx.Response) -> tuple[str | None, str | None]:
        """Read errorCode and errorMsg from an error response body."""
        try:
            if response.content:
                data = response.json()
                if isinstance(data, dict):
                    code = data.get("errorCode")
                    msg = (
                        data.get("errorMsg")
                        or data.get("message")
                        or data.get("error")
                    )
                    return code, msg
        except ValueError:
            pass
        return None, None

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Map an HTTP error to a pyfaas exception.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        error_code, error_msg = self._extract_error(e.response)
        friendly = ERROR_MESSAGES.get(error_code or "")

        if status_code == 401:
            return (
                FaasAuthenticationError(
                    "You are not authorized to perform this action, "
                    "please check your token",
                    error_code,
                ),
                False,
            )
        if status_code == 403:
            return (
                FaasPermissionError(
                    error_msg or "Access forbidden - check your permissions",
                    error_code,
                ),
                False,
            )
        if status_code == 404:
            return FaasNotFoundError(error_msg or "Resource not found", error_code), False
        if status_code == 409:
            return (
                FaasConflictError(
                    error_msg or friendly or "Operation already in progress",
                    error_code,
                ),
                False,
            )
        if status_code == 429:
            error = FaasRateLimitError("Rate limit exceeded - please try again later")
            return error, attempt < self.max_retries
        if (
            status_code in (400, 422)
            or ".validation." in (error_code or "")
            or "contract-error" in (error_code or "")
        ):
            return (
                FaasValidationError(
                    friendly or error_msg or "Bad Request", error_code
                ),
                False,
            )

        message = f"API request failed with status {status_code}"
        if friendly or error_msg:
            message = f"{message}: {friendly or error_msg}"
        error = FaasAPIError(message, error_code)
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return error, should_retry

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path below the account base URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data, ``{}`` for empty bodies, or None when the
            platform answered 304 Not Modified

        Raises:
            FaasAPIError: If the request fails after all retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        params = dict(kwargs.pop("params", None) or {})
        params.setdefault("v", 1)
        if self.user_id:
            params.setdefault("userId", self.user_id)
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug("%s %s (attempt %d)", method, url, attempt + 1)
                response = await client.request(method, url, params=params, **kwargs)
                if response.status_code == 304:
                    return None
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    if "text/html" in content_type:
                        raise FaasAuthenticationError(
                            "Invalid token - server returned HTML instead of JSON"
                        )
                    raise FaasInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise FaasInvalidResponseError(
                            "Invalid JSON response from server"
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    delay = self._calculate_retry_delay(attempt)
                    if isinstance(error, FaasRateLimitError):
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after and retry_after.isdigit():
                            delay = float(retry_after)
                    logger.debug("Retrying %s %s in %.2fs", method, url, delay)
                    await asyncio.sleep(delay)
                    continue
                raise error from e
            except FaasAPIError:
                raise
            except httpx.RequestError as e:
                error = FaasNetworkError(f"Network error: {e}")
                last_exception = error
                if attempt < self.max_retries:
                    await asyncio.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise FaasAPIError("Request failed after all retry attempts")

    # =========================
    # Function Operations
    # =========================

    async def list_by_names(self, names: list[str]) -> list[RemoteFunctionRecord]:
        """Fetch the functions with the given names in one request.

        The platform may match names loosely, so only exact matches are
        returned.

        Args:
            names: Function names to look up

        Returns:
            Records whose name is one of ``names``
        """
        if not names:
            return []
        data = await self._request(
            "GET", "/functions", params={"names": ",".join(names)}
        )
        wanted = set(names)
        return [
            record
            for record in RemoteFunctionRecord.list_from_api_response(data)
            if record.name in wanted
        ]

    async def list_all(self) -> list[RemoteFunctionRecord]:
        """Fetch every function of the account."""
        data = await self._request("GET", "/functions")
        return RemoteFunctionRecord.list_from_api_response(data)

    async def get_by_uuid(self, uuid: str) -> RemoteFunctionRecord:
        """Fetch a single function by uuid."""
        data = await self._request("GET", f"/functions/{uuid}")
        # Some platform versions wrap single records in a list
        if isinstance(data, list):
            if not data:
                raise FaasNotFoundError(f"Function {uuid} not found")
            data = data[0]
        return RemoteFunctionRecord.from_api_response(data)

    async def create_function(self, body: dict[str, Any]) -> RemoteFunctionRecord:
        """Create a new function.

        Args:
            body: Create body with name, description, eventId and manifest

        Returns:
            The created record
        """
        data = await self._request("POST", "/functions", json=body)
        return RemoteFunctionRecord.from_api_response(data or body)

    async def update_function_meta(
        self, uuid: str, meta: dict[str, Any]
    ) -> RemoteFunctionRecord | None:
        """Update metadata (description, state, skills) of a function.

        Returns:
            The updated record, or None when the platform saw no change
        """
        data = await self._request("PUT", f"/functions/{uuid}", json=meta)
        if data is None:
            return None
        return RemoteFunctionRecord.from_api_response(data)

    async def update_function_manifest(
        self, uuid: str, manifest: dict[str, Any]
    ) -> bool:
        """Update code and environment of a function.

        Args:
            uuid: Function uuid
            manifest: Partial manifest; must contain the current ``version``

        Returns:
            True if the manifest was changed, False if the platform skipped it
        """
        data = await self._request("PUT", f"/functions/{uuid}/manifest", json=manifest)
        return data is not None

    async def deploy(self, uuid: str) -> DeploymentResponse:
        """Start deploying a function.

        A deployment that is already running is reported in the response
        (with ``uuid`` set) instead of raising.
        """
        return await self._deployment_request("POST", uuid)

    async def undeploy(self, uuid: str) -> DeploymentResponse:
        """Start undeploying a function."""
        return await self._deployment_request("DELETE", uuid)

    async def _deployment_request(self, method: str, uuid: str) -> DeploymentResponse:
        try:
            data = await self._request(method, f"/deployments/{uuid}")
        except FaasConflictError as e:
            return DeploymentResponse(message=e.message, uuid=uuid)
        message = ""
        if isinstance(data, dict):
            message = data.get("message", "")
        return DeploymentResponse(message=message)
