"""
Async RDAP Client

Queries the authoritative RDAP server for a domain (resolved through the IANA
bootstrap) and hands back the decoded record. Non-success statuses are
surfaced either as the server's JSON error object or as an RDAPLookupError
whose message carries the HTTP status line.
"""

import json
import logging
from typing import Any

import httpx

from . import rdap_bootstrap
from .exceptions import RDAPLookupError, UnsupportedTLDError

logger = logging.getLogger(__name__)

RDAP_ACCEPT = "application/rdap+json, application/json"


class AsyncRDAPClient:
    """
    Async RDAP client with connection pooling.

    Usage:
        async with AsyncRDAPClient() as client:
            record = await client.query("example.com")
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Accept": RDAP_ACCEPT},
            follow_redirects=True,
            transport=self._transport,
            limits=httpx.Limits(
                max_connections=100,
                max_keepalive_connections=20,
            ),
        )

    async def __aenter__(self) -> "AsyncRDAPClient":
        self._client = self._create_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _error_body(response: httpx.Response) -> dict | None:
        """Return the RDAP error object (errorCode/title) if the body is one."""
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if isinstance(body, dict) and "errorCode" in body:
            return body
        return None

    async def query(self, domain: str) -> Any:
        """
        Look up a domain via RDAP.

        Args:
            domain: Normalized domain name

        Returns:
            The decoded RDAP record (dict), None for an empty 200 body, or the
            server's JSON error object for non-success statuses that carry one.

        Raises:
            UnsupportedTLDError: TLD not in the RDAP bootstrap
            RDAPLookupError: 429, or any non-success status without a JSON
                error object, or an undecodable 200 body
            httpx.HTTPError: transport failures (timeouts, connection errors)
        """
        if self._client is None:
            self._client = self._create_client()

        tld = domain.rsplit(".", 1)[-1].lower() if "." in domain else ""
        server = await rdap_bootstrap.get_rdap_server(tld, client=self._client)
        if not server:
            raise UnsupportedTLDError(f"TLD .{tld} not in RDAP bootstrap")

        url = f"{server.rstrip('/')}/domain/{domain}"
        response = await self._client.get(url)
        status = response.status_code
        logger.debug("RDAP %s -> HTTP %d", url, status)

        if status == 200:
            if not response.content.strip():
                return None
            try:
                return response.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise RDAPLookupError(f"Invalid JSON in RDAP response: {e}", status) from e

        reason = httpx.codes.get_reason_phrase(status) or "Error"
        if status == 429:
            raise RDAPLookupError(f"RDAP status {status} {reason}", status)

        body = self._error_body(response)
        if body is not None:
            return body

        raise RDAPLookupError(f"RDAP status {status} {reason}", status)


async def rdap_lookup(domain: str, timeout: float = 10.0) -> Any:
    """
    Convenience function for a one-off lookup without managing client lifecycle.
    """
    async with AsyncRDAPClient(timeout=timeout) as client:
        return await client.query(domain)
