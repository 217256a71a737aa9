"""
Exceptions raised by the RDAP and WHOIS clients.

The lookup paths classify these by message text, so messages carry the
upstream status line (e.g. "404 Not Found", "429 Too Many Requests").
"""


class DomainCheckerError(Exception):
    """Base exception for domain checker errors."""


class RDAPLookupError(DomainCheckerError):
    """RDAP server answered with a non-success status and no JSON error body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnsupportedTLDError(DomainCheckerError):
    """No RDAP server is known for the domain's TLD."""


class WhoisLookupError(DomainCheckerError):
    """WHOIS query failed before any response text was received."""
