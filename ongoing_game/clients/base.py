"""Shared httpx session handling and status-code error mapping."""

import asyncio
from typing import Any, Dict, Optional, Union
import httpx
import structlog

from ..core.exceptions import (
    AuthenticationError,
    BadRequestError,
    ClientAPIError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = structlog.get_logger(__name__)


class BaseHttpClient:
    """Lazily opened httpx session with consistent error handling.

    Failures are never retried here; a failed load is simply retried by the
    next generation or an explicit reload.
    """

    client_name = "http"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
        verify: bool = True,
        timeout: Union[float, httpx.Timeout] = httpx.Timeout(connect=5.0, read=25.0, write=10.0, pool=30.0),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.headers = headers or {}
        self.auth = auth
        self.verify = verify
        self.timeout = timeout
        self.transport = transport

        self.session: Optional[httpx.AsyncClient] = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def start_session(self) -> None:
        """Start the httpx session."""
        if self.session is None or self.session.is_closed:
            async with self._session_lock:
                if self.session is None or self.session.is_closed:
                    self.session = httpx.AsyncClient(
                        base_url=self.base_url,
                        headers={"Content-Type": "application/json", **self.headers},
                        auth=self.auth,
                        verify=self.verify,
                        timeout=self.timeout,
                        transport=self.transport,
                    )
                    logger.info(f"{self.client_name} client session started", base_url=self.base_url)

    async def close(self) -> None:
        """Close the httpx session."""
        if self.session and not self.session.is_closed:
            await self.session.aclose()
            logger.info(f"{self.client_name} client session closed")

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        """Raise the ClientAPIError subclass matching a non-2xx status."""
        status = response.status_code
        if status < 400:
            return

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        if not isinstance(body, dict):
            body = {"body": body}

        if status == 400:
            raise BadRequestError("Invalid request parameters", status_code=status, response_data=body)
        elif status == 401:
            raise AuthenticationError("Invalid credentials", status_code=status, response_data=body)
        elif status == 403:
            raise ForbiddenError("Access forbidden", status_code=status, response_data=body)
        elif status == 404:
            raise NotFoundError("Resource not found", status_code=status, response_data=body)
        elif status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded",
                status_code=status,
                response_data=body,
                retry_after=float(retry_after) if retry_after else None,
            )
        elif status >= 500:
            raise ServiceUnavailableError(f"Server error {status}", status_code=status, response_data=body)

        raise ClientAPIError(f"Unexpected status {status}", status_code=status, response_data=body)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """
        Make an HTTP request and decode the JSON body.

        Raises:
            ClientAPIError: For transport failures and error status codes
        """
        await self.start_session()

        if self.session is None:
            raise ClientAPIError("Session not initialized")

        try:
            response = await self.session.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            raise ClientAPIError(f"Request failed: {str(e)}") from e

        try:
            self._raise_for_status(response)
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        finally:
            await response.aclose()
