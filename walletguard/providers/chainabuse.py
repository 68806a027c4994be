"""Abuse registry (ChainAbuse) client."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from walletguard.core.exceptions import RegistryUnavailable
from walletguard.models.risk import AbuseQueryResult, AbuseReport

logger = logging.getLogger(__name__)


def parse_report_envelope(data: Any) -> tuple[list[AbuseReport], int]:
    """
    Normalize the registry's response envelope.

    Three shapes are accepted: ``{"reports": [...], "total": n}``, a bare
    list, and ``{"data": [...], "total": n}``. ``total`` falls back to the
    number of reports.

    Raises:
        RegistryUnavailable: If the payload matches none of the shapes.
    """
    total: Any = None
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("reports"), list):
        items = data["reports"]
        total = data.get("total")
    elif isinstance(data, dict) and isinstance(data.get("data"), list):
        items = data["data"]
        total = data.get("total")
    else:
        raise RegistryUnavailable(
            f"Unrecognized registry response shape: {type(data).__name__}"
        )

    if not all(isinstance(item, dict) for item in items):
        raise RegistryUnavailable("Registry returned reports that are not objects")

    try:
        reports = [AbuseReport.model_validate(item) for item in items]
    except ValidationError as e:
        raise RegistryUnavailable(f"Registry returned malformed reports: {e.error_count()} errors") from e

    if isinstance(total, bool) or not isinstance(total, int) or total < len(reports):
        total = len(reports)
    return reports, total


class AbuseRegistryClient:
    """
    Client for the external fraud-report registry.

    Never raises for upstream problems: network errors, timeouts,
    authentication failures, bad statuses and unknown payloads all come back
    as an unchecked, degraded result carrying a human-readable warning.
    """

    def __init__(
        self,
        endpoint: str,
        credential: str,
        chain_alias_map: dict[str, str] | None = None,
        timeout: float = 8.0,
        page_size: int = 50,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the registry client.

        Args:
            endpoint: Registry base URL.
            credential: API key, sent as both basic-auth user and password.
            chain_alias_map: Chain name to registry chain code.
            timeout: Request timeout in seconds.
            page_size: Reports requested per query.
            client: Optional pre-built HTTP client (used in tests).
        """
        self._endpoint = endpoint.rstrip("/")
        self._credential = credential
        self._aliases = {k.lower(): v for k, v in (chain_alias_map or {}).items()}
        self._timeout = timeout
        self._page_size = page_size
        self._client = client
        self._request_count = 0

    @property
    def name(self) -> str:
        """Client name identifier."""
        return "chainabuse"

    def chain_code(self, chain: str) -> str:
        """Map a chain name to the registry's chain code."""
        return self._aliases.get(chain.lower(), chain.upper())

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "Accept": "application/json",
                    "User-Agent": "WalletGuard/1.0",
                },
            )
        return self._client

    async def _fetch(self, address: str, chain: str) -> Any:
        """
        Perform the registry request.

        Raises:
            RegistryUnavailable: For any transport or status failure.
        """
        if not self._credential:
            raise RegistryUnavailable("Abuse registry credential is not configured")

        params = {
            "address": address,
            "chain": self.chain_code(chain),
            "includePrivate": "false",
            "page": "1",
            "perPage": str(self._page_size),
        }
        client = await self._get_client()
        self._request_count += 1
        logger.info(f"[ChainAbuse] Checking {address[:8]}... on {params['chain']}")

        try:
            response = await client.get(
                f"{self._endpoint}/reports",
                params=params,
                auth=httpx.BasicAuth(self._credential, self._credential),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise RegistryUnavailable(f"Registry request timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise RegistryUnavailable(f"Registry request failed: {type(e).__name__}") from e

        if response.status_code in (401, 403):
            raise RegistryUnavailable(
                "Registry rejected the configured credential", response.status_code
            )
        if response.status_code >= 400:
            logger.error(f"[ChainAbuse] HTTP {response.status_code}: {response.text[:200]}")
            raise RegistryUnavailable(
                f"Registry returned HTTP {response.status_code}", response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise RegistryUnavailable("Registry returned a non-JSON response") from e

    async def query(self, address: str, chain: str = "solana") -> AbuseQueryResult:
        """
        Look up fraud reports for an address.

        Args:
            address: Validated address.
            chain: Chain name, mapped to the registry's code.

        Returns:
            Normalized result; degraded when the registry was unusable.
        """
        try:
            data = await self._fetch(address, chain)
            reports, total = parse_report_envelope(data)
        except RegistryUnavailable as e:
            logger.warning(f"[ChainAbuse] Verification unavailable: {e.message}")
            return AbuseQueryResult.unavailable(
                f"Address verification is currently unavailable ({e.message}). "
                "Please verify the recipient manually."
            )

        if reports:
            logger.warning(f"[ChainAbuse] {total} report(s) found for {address[:8]}...")
            message = f"Found {total} fraud report(s)"
        else:
            message = "No fraud reports found"

        return AbuseQueryResult(
            checked=True,
            safe=not reports,
            reports=reports,
            total_reports=total,
            message=message,
        )

    def get_request_count(self) -> int:
        """Number of registry requests made so far."""
        return self._request_count

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
