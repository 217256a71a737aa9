"""
WHOIS Client

Returns the raw WHOIS text for a domain, following registry referrals to the
registrar's WHOIS server. The socket work is done by python-whois's NICClient
in a worker thread so the event loop is never blocked.
"""

import asyncio
import logging

from whois import NICClient

from .exceptions import WhoisLookupError

logger = logging.getLogger(__name__)


class WhoisClient:
    """Thin async wrapper around python-whois's NICClient."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def _query_sync(self, domain: str) -> str:
        client = NICClient()
        server = client.choose_server(domain)
        if not server:
            raise WhoisLookupError(f"No WHOIS server known for {domain}")

        logger.debug("WHOIS %s via %s", domain, server)
        # Socket errors must raise rather than be folded into the response text,
        # otherwise they would read as a short "not found" body.
        return client.whois(
            domain,
            server,
            NICClient.WHOIS_RECURSE,
            quiet=True,
            timeout=self._timeout,
            ignore_socket_errors=False,
        )

    async def query(self, domain: str) -> str:
        """
        Look up a domain via WHOIS.

        Args:
            domain: Normalized domain name

        Returns:
            Raw WHOIS response text (may be empty)

        Raises:
            WhoisLookupError: no WHOIS server known for the TLD
            OSError: socket failures (timeouts, refused connections)
        """
        return await asyncio.to_thread(self._query_sync, domain)


async def whois_lookup(domain: str, timeout: float = 10.0) -> str:
    """Convenience function for a one-off WHOIS lookup."""
    return await WhoisClient(timeout=timeout).query(domain)
