"""
RDAP Bootstrap Module

Fetches the IANA RDAP bootstrap file to enable direct registry queries
instead of always using rdap.org as a proxy.

The bootstrap file maps TLDs to their authoritative RDAP servers. It is held
in process memory only; nothing is written to disk.
"""

import asyncio
import json
import logging
import time

import httpx

logger = logging.getLogger(__name__)

# IANA bootstrap URL
IANA_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"

# Redirector used when the bootstrap is unavailable
FALLBACK_RDAP_SERVER = "https://rdap.org/"

# Default cache expiry if no Cache-Control header (24 hours)
DEFAULT_CACHE_TTL = 86400

# Process-local bootstrap state
_services: dict[str, list[str]] = {}
_expires: float = 0.0
_lock: asyncio.Lock | None = None
_lock_loop: asyncio.AbstractEventLoop | None = None


def _get_lock() -> asyncio.Lock:
    """Return the refresh lock for the running event loop."""
    global _lock, _lock_loop
    loop = asyncio.get_running_loop()
    if _lock is None or _lock_loop is not loop:
        _lock = asyncio.Lock()
        _lock_loop = loop
    return _lock


def _parse_max_age(cache_control: str) -> int | None:
    """Parse max-age from Cache-Control header."""
    for directive in cache_control.split(","):
        directive = directive.strip().lower()
        if directive.startswith("max-age="):
            try:
                return int(directive[8:])
            except ValueError:
                pass
    return None


def _parse_bootstrap_services(data: dict) -> dict[str, list[str]]:
    """
    Parse IANA bootstrap format into TLD -> server URLs mapping.

    Bootstrap format:
    {
        "services": [
            [["com", "net"], ["https://rdap.verisign.com/com/v1/"]],
            [["org"], ["https://rdap.publicinterestregistry.org/rdap/"]],
            ...
        ]
    }
    """
    services = {}
    for entry in data.get("services", []):
        if len(entry) >= 2:
            tlds = entry[0]
            urls = entry[1]
            for tld in tlds:
                services[tld.lower()] = urls
    return services


def load_services(services: dict[str, list[str]], ttl: float = DEFAULT_CACHE_TTL) -> None:
    """Install a TLD -> server URLs mapping directly (also used by tests)."""
    global _services, _expires
    _services = {tld.lower(): urls for tld, urls in services.items()}
    _expires = time.time() + ttl


def clear() -> None:
    """Drop the in-memory bootstrap so the next lookup refetches it."""
    global _services, _expires
    _services = {}
    _expires = 0.0


async def refresh_bootstrap(
    force: bool = False,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """
    Fetch/update the in-memory RDAP bootstrap from IANA.

    Args:
        force: If True, ignore expiry and always fetch.
        client: Optional shared AsyncClient (a short-lived one is used otherwise).

    Returns:
        True if the bootstrap was updated, False if unchanged or the fetch failed.
    """
    async with _get_lock():
        if not force and _services and time.time() < _expires:
            return False  # Still valid

        headers = {
            "Accept": "application/json",
            "User-Agent": "DomainCheckerMCP/0.2 (RDAP Bootstrap)",
        }

        try:
            if client is not None:
                response = await client.get(IANA_BOOTSTRAP_URL, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=30, follow_redirects=True) as own_client:
                    response = await own_client.get(IANA_BOOTSTRAP_URL, headers=headers)
        except httpx.HTTPError as e:
            # Network error - keep stale data if any
            logger.warning("RDAP bootstrap fetch failed: %s", e)
            return False

        if response.status_code != 200:
            logger.warning("RDAP bootstrap fetch returned HTTP %d", response.status_code)
            return False

        try:
            data = response.json()
        except json.JSONDecodeError:
            logger.warning("RDAP bootstrap response is not valid JSON")
            return False

        services = _parse_bootstrap_services(data)
        if not services:
            return False  # Invalid data

        max_age = _parse_max_age(response.headers.get("Cache-Control", ""))
        load_services(services, ttl=max_age if max_age else DEFAULT_CACHE_TTL)
        logger.debug("Loaded RDAP bootstrap with %d TLDs", len(services))
        return True


async def _ensure_loaded(client: httpx.AsyncClient | None = None) -> None:
    if not _services or time.time() >= _expires:
        await refresh_bootstrap(client=client)


async def get_rdap_server(tld: str, client: httpx.AsyncClient | None = None) -> str | None:
    """
    Get the RDAP server URL for a given TLD.

    Automatically refreshes the bootstrap if expired. If the bootstrap could
    not be loaded at all, returns the rdap.org redirector so lookups can
    still proceed.

    Args:
        tld: The top-level domain (without leading dot), e.g. "com", "io"
        client: Optional shared AsyncClient for the refresh

    Returns:
        The RDAP server URL (e.g. "https://rdap.verisign.com/com/v1/"),
        or None if the TLD is not in the bootstrap.
    """
    await _ensure_loaded(client)

    if not _services:
        return FALLBACK_RDAP_SERVER

    urls = _services.get(tld.lower())
    if urls:
        # Prefer HTTPS endpoints
        for url in urls:
            if url.lower().startswith("https://"):
                return url
        return urls[0]

    return None


async def is_tld_supported(tld: str) -> bool:
    """Check if a TLD has an entry in the RDAP bootstrap."""
    await _ensure_loaded()
    return tld.lower() in _services


async def get_supported_tlds() -> list[str]:
    """Get list of all TLDs supported by RDAP, sorted alphabetically."""
    await _ensure_loaded()
    return sorted(_services.keys())
