"""JSON-RPC transport with ordered endpoint fallback."""

import itertools
import logging
from typing import Any

import httpx

from walletguard.core.exceptions import RPCUnavailable

logger = logging.getLogger(__name__)


class JSONRPCError(Exception):
    """Error object returned by a JSON-RPC endpoint."""

    def __init__(self, code: int | None, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"RPC error {code}: {message}")


def redact_endpoint(endpoint: str) -> str:
    """Strip query strings (API keys) from an endpoint for logging."""
    url = httpx.URL(endpoint)
    return f"{url.scheme}://{url.host}{url.path}".rstrip("/")


class JSONRPCClient:
    """
    JSON-RPC 2.0 client over an ordered list of endpoints.

    Every call walks the list in order with a bounded per-endpoint timeout;
    the first endpoint that answers wins. The endpoint that served the last
    successful call is kept for observability.
    """

    def __init__(
        self,
        endpoints: list[str],
        timeout: float = 5.0,
        label: str = "RPC",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the JSON-RPC client.

        Args:
            endpoints: RPC URLs in priority order.
            timeout: Per-endpoint request timeout in seconds.
            label: Prefix used in log lines.
            client: Optional pre-built HTTP client (used in tests).
        """
        if not endpoints:
            raise ValueError("At least one RPC endpoint is required")
        self._endpoints = list(endpoints)
        self._timeout = timeout
        self._label = label
        self._client = client
        self._ids = itertools.count(1)
        self._request_count = 0
        self.last_endpoint: str | None = None

    @property
    def endpoints(self) -> list[str]:
        """Configured endpoints in priority order."""
        return list(self._endpoints)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "User-Agent": "WalletGuard/1.0",
                },
            )
        return self._client

    async def call(
        self,
        method: str,
        params: list[Any],
        fallback_on_rpc_error: bool = True,
    ) -> Any:
        """
        Invoke an RPC method, falling back through the endpoint list.

        Args:
            method: JSON-RPC method name.
            params: Positional parameters.
            fallback_on_rpc_error: Try the next endpoint when an endpoint
                answers with an error object. Disable for calls whose error
                is a final answer (broadcasts).

        Returns:
            The ``result`` member of the response.

        Raises:
            RPCUnavailable: If every endpoint failed.
            JSONRPCError: If an endpoint answered with an error and
                fallback_on_rpc_error is False.
        """
        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        errors: list[str] = []

        for index, endpoint in enumerate(self._endpoints, start=1):
            safe_endpoint = redact_endpoint(endpoint)
            logger.debug(
                f"[{self._label}] {method} via endpoint {index}/{len(self._endpoints)}: {safe_endpoint}"
            )
            try:
                self._request_count += 1
                response = await client.post(endpoint, json=payload, timeout=self._timeout)
                response.raise_for_status()
                body = response.json()
            except httpx.TimeoutException:
                logger.warning(f"[{self._label}] {safe_endpoint} timed out after {self._timeout}s")
                errors.append(f"{safe_endpoint}: timeout")
                continue
            except httpx.HTTPStatusError as e:
                logger.warning(f"[{self._label}] {safe_endpoint} returned HTTP {e.response.status_code}")
                errors.append(f"{safe_endpoint}: HTTP {e.response.status_code}")
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[{self._label}] {safe_endpoint} failed: {e}")
                errors.append(f"{safe_endpoint}: {type(e).__name__}")
                continue

            if not isinstance(body, dict):
                errors.append(f"{safe_endpoint}: malformed response")
                continue

            if body.get("error"):
                error = body["error"]
                rpc_error = JSONRPCError(
                    error.get("code") if isinstance(error, dict) else None,
                    error.get("message", str(error)) if isinstance(error, dict) else str(error),
                )
                if not fallback_on_rpc_error:
                    self.last_endpoint = endpoint
                    raise rpc_error
                logger.warning(f"[{self._label}] {safe_endpoint} answered with {rpc_error}")
                errors.append(f"{safe_endpoint}: {rpc_error}")
                continue

            if "result" not in body:
                errors.append(f"{safe_endpoint}: missing result")
                continue

            self.last_endpoint = endpoint
            return body["result"]

        logger.error(f"[{self._label}] All {len(self._endpoints)} endpoints failed for {method}")
        raise RPCUnavailable(method, errors)

    def get_request_count(self) -> int:
        """Number of HTTP requests made so far."""
        return self._request_count

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
