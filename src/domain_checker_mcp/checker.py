"""
Domain availability engine.

Per domain: try RDAP first, fall back to WHOIS, and classify whatever comes
back into one of four statuses (available / taken / unknown / rate_limited).
Batches fan out over a semaphore-bounded set of tasks and come back in input
order.

Classification precedence is kept in ordered rule tables so each rule can be
read and tested on its own.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .config import LookupConfig
from .extractor import extract_info, payload_text
from .models import DomainCheckResult, DomainStatus, LookupMethod
from .rdap_client import AsyncRDAPClient
from .retry import is_rate_limit_message, with_backoff
from .whois_client import WhoisClient

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]

BOTH_FAILED_MESSAGE = "Both registry and legacy checks failed"
EMPTY_ERROR_MESSAGE = "Empty error response"
REGISTRY_SERVER_ERROR_MESSAGE = "Registry server error"

# Case-insensitive substrings in WHOIS text that mean "not registered"
AVAILABLE_PHRASES = (
    "no match",
    "not found",
    "no data found",
    "status: available",
    "domain not found",
    "no entries found",
    "domain status: available",
    "not registered",
    "is available",
    "object does not exist",
    "domain name not known",
    "no such domain",
    "domain is not registered",
)


def normalize_domain(domain: str) -> str:
    """Lower-case and trim a domain name."""
    return str(domain).strip().lower()


def _is_empty(payload: Any) -> bool:
    if payload is None:
        return True
    if isinstance(payload, (str, bytes)):
        return not payload.strip()
    if isinstance(payload, (dict, list)):
        return not payload
    return False


# =============================================================================
# Registry (RDAP) rules
# =============================================================================

def payload_error_code(payload: Any) -> int | None:
    """Return the RDAP errorCode as an int, if the payload carries one."""
    if not isinstance(payload, dict):
        return None
    code = payload.get("errorCode")
    if isinstance(code, bool):
        return None
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def payload_title(payload: Any) -> str | None:
    """Return the RDAP error title, if the payload carries one."""
    if not isinstance(payload, dict):
        return None
    title = payload.get("title")
    return title if isinstance(title, str) and title else None


@dataclass(frozen=True)
class RegistryErrorRule:
    """Maps a raised RDAP error message to a status."""

    name: str
    matches: Callable[[str], bool]
    status: DomainStatus


# A raised error that matches none of these propagates (triggers WHOIS fallback)
REGISTRY_ERROR_RULES = (
    RegistryErrorRule("rate_limited", is_rate_limit_message, DomainStatus.RATE_LIMITED),
    RegistryErrorRule(
        "not_found",
        lambda message: "404" in message or "not found" in message.lower(),
        DomainStatus.AVAILABLE,
    ),
)


@dataclass(frozen=True)
class RegistryPayloadRule:
    """Maps a successful RDAP payload to a status."""

    name: str
    matches: Callable[[Any], bool]
    status: DomainStatus


def _title_says_not_found(payload: Any) -> bool:
    # Covers "Not Found" and "Object not found"
    return "not found" in (payload_title(payload) or "").lower()


def _client_error(payload: Any) -> bool:
    code = payload_error_code(payload)
    return code is not None and 400 <= code < 500


def _server_error(payload: Any) -> bool:
    code = payload_error_code(payload)
    return code is not None and code >= 500


# A payload that matches none of these is a registration record (taken)
REGISTRY_PAYLOAD_RULES = (
    RegistryPayloadRule("empty", _is_empty, DomainStatus.AVAILABLE),
    RegistryPayloadRule(
        "not_found",
        lambda payload: payload_error_code(payload) == 404 or _title_says_not_found(payload),
        DomainStatus.AVAILABLE,
    ),
    RegistryPayloadRule("client_error", _client_error, DomainStatus.AVAILABLE),
    RegistryPayloadRule("server_error", _server_error, DomainStatus.UNKNOWN),
)


def classify_registry_error(error: BaseException) -> DomainStatus | None:
    """Classify a raised RDAP error; None means "not classifiable here"."""
    message = str(error)
    for rule in REGISTRY_ERROR_RULES:
        if rule.matches(message):
            return rule.status
    return None


def classify_registry_payload(payload: Any) -> RegistryPayloadRule | None:
    """Return the first matching payload rule; None means taken."""
    for rule in REGISTRY_PAYLOAD_RULES:
        if rule.matches(payload):
            return rule
    return None


# =============================================================================
# Legacy (WHOIS) rules
# =============================================================================

@dataclass(frozen=True)
class LegacyTextRule:
    """
    Maps WHOIS response text to a status.

    matches receives the lower-cased text, the trimmed text and the config.
    """

    name: str
    matches: Callable[[str, str, LookupConfig], bool]
    status: DomainStatus


# A response that matches none of these is a registration record (taken)
LEGACY_TEXT_RULES = (
    # Some servers embed throttling notices in an otherwise normal reply
    LegacyTextRule(
        "rate_limit_notice",
        lambda lowered, trimmed, config: is_rate_limit_message(lowered),
        DomainStatus.RATE_LIMITED,
    ),
    LegacyTextRule(
        "availability_phrase",
        lambda lowered, trimmed, config: any(phrase in lowered for phrase in AVAILABLE_PHRASES),
        DomainStatus.AVAILABLE,
    ),
    LegacyTextRule(
        "not_found_prefix",
        lambda lowered, trimmed, config: trimmed.lower().startswith("domain not found"),
        DomainStatus.AVAILABLE,
    ),
    # Terse "not found" templates; may misclassify a terse taken-domain reply
    LegacyTextRule(
        "short_response",
        lambda lowered, trimmed, config: (
            len(trimmed) < config.short_response_threshold and "registrar" not in lowered
        ),
        DomainStatus.AVAILABLE,
    ),
)


def classify_legacy_text(text: str, config: LookupConfig | None = None) -> LegacyTextRule | None:
    """Return the first matching WHOIS text rule; None means taken."""
    config = config or LookupConfig()
    lowered = text.lower()
    trimmed = text.strip()
    for rule in LEGACY_TEXT_RULES:
        if rule.matches(lowered, trimmed, config):
            return rule
    return None


# =============================================================================
# Checker
# =============================================================================

class DomainChecker:
    """
    RDAP-first, WHOIS-fallback domain checker.

    Usage:
        async with DomainChecker() as checker:
            result = await checker.check_domain("example.com")
            results = await checker.check_domains(["a.com", "b.net"], concurrency=4)

    The raw lookups are injectable (rdap_query / whois_query), as is the
    sleep used between retries.
    """

    def __init__(
        self,
        config: LookupConfig | None = None,
        rdap_query: Lookup | None = None,
        whois_query: Lookup | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or LookupConfig()
        self._rdap_client: AsyncRDAPClient | None = None
        if rdap_query is None:
            self._rdap_client = AsyncRDAPClient(timeout=self._config.rdap_timeout)
            rdap_query = self._rdap_client.query
        if whois_query is None:
            whois_query = WhoisClient(timeout=self._config.whois_timeout).query
        self._rdap_query = rdap_query
        self._whois_query = whois_query
        self._sleep = sleep

    @property
    def config(self) -> LookupConfig:
        return self._config

    async def __aenter__(self) -> "DomainChecker":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        if self._rdap_client is not None:
            await self._rdap_client.close()

    async def check_with_rdap(self, domain: str) -> DomainCheckResult:
        """
        Registry lookup path.

        Raises the underlying error when it is neither rate-limit nor
        not-found shaped, so the caller can fall back to WHOIS.
        """
        try:
            payload = await with_backoff(
                lambda: self._rdap_query(domain), self._config, self._sleep
            )
        except Exception as e:
            status = classify_registry_error(e)
            if status is None:
                raise
            logger.debug("RDAP %s: %s (%s)", domain, status.value, e)
            return DomainCheckResult(
                domain=domain,
                status=status,
                method=LookupMethod.REGISTRY,
                error=str(e) if status == DomainStatus.RATE_LIMITED else None,
            )

        rule = classify_registry_payload(payload)
        if rule is None:
            return DomainCheckResult(
                domain=domain,
                status=DomainStatus.TAKEN,
                method=LookupMethod.REGISTRY,
                raw_data=payload,
                domain_info=extract_info(payload, LookupMethod.REGISTRY),
            )

        logger.debug("RDAP %s: %s (rule %s)", domain, rule.status.value, rule.name)
        error = None
        if rule.status == DomainStatus.UNKNOWN:
            error = payload_title(payload) or REGISTRY_SERVER_ERROR_MESSAGE
        return DomainCheckResult(
            domain=domain,
            status=rule.status,
            method=LookupMethod.REGISTRY,
            error=error,
            raw_data=None if _is_empty(payload) else payload,
        )

    async def check_with_whois(self, domain: str) -> DomainCheckResult:
        """Legacy lookup path. Never raises for lookup failures."""
        try:
            payload = await with_backoff(
                lambda: self._whois_query(domain), self._config, self._sleep
            )
        except Exception as e:
            message = str(e)
            if is_rate_limit_message(message):
                status = DomainStatus.RATE_LIMITED
            else:
                status = DomainStatus.UNKNOWN
                if not message.strip():
                    message = EMPTY_ERROR_MESSAGE
            logger.debug("WHOIS %s: %s (%s)", domain, status.value, message)
            return DomainCheckResult(
                domain=domain,
                status=status,
                method=LookupMethod.LEGACY,
                error=message,
            )

        if _is_empty(payload):
            return DomainCheckResult(
                domain=domain,
                status=DomainStatus.AVAILABLE,
                method=LookupMethod.LEGACY,
            )

        text = payload_text(payload)
        rule = classify_legacy_text(text, self._config)
        if rule is None:
            return DomainCheckResult(
                domain=domain,
                status=DomainStatus.TAKEN,
                method=LookupMethod.LEGACY,
                raw_data=payload,
                domain_info=extract_info(text, LookupMethod.LEGACY),
            )

        logger.debug("WHOIS %s: %s (rule %s)", domain, rule.status.value, rule.name)
        return DomainCheckResult(
            domain=domain,
            status=rule.status,
            method=LookupMethod.LEGACY,
            raw_data=payload if rule.status == DomainStatus.RATE_LIMITED else None,
        )

    async def check_domain(self, domain: str) -> DomainCheckResult:
        """
        Check a single domain: RDAP first, WHOIS on failure.

        Always returns a result; never raises.
        """
        domain = normalize_domain(domain)

        try:
            return await self.check_with_rdap(domain)
        except Exception as e:
            logger.debug("RDAP failed for %s, falling back to WHOIS: %s", domain, e)

        try:
            return await self.check_with_whois(domain)
        except Exception:
            logger.exception("WHOIS fallback failed for %s", domain)
            return DomainCheckResult(
                domain=domain,
                status=DomainStatus.UNKNOWN,
                method=LookupMethod.LEGACY,
                error=BOTH_FAILED_MESSAGE,
            )

    async def check_domains(
        self,
        domains: list[str],
        concurrency: int | None = None,
    ) -> list[DomainCheckResult]:
        """
        Check multiple domains with at most `concurrency` lookups in flight.

        Results are returned in input order regardless of completion order.
        Concurrency is clamped to [1, config.max_concurrency].
        """
        if not domains:
            return []

        if concurrency is None:
            concurrency = self._config.default_concurrency
        limit = max(1, min(int(concurrency), self._config.max_concurrency))
        semaphore = asyncio.Semaphore(limit)
        results: list[DomainCheckResult | None] = [None] * len(domains)

        async def run(index: int, domain: str) -> None:
            async with semaphore:
                results[index] = await self.check_domain(domain)

        await asyncio.gather(*(run(i, d) for i, d in enumerate(domains)))
        return results


async def check_domain(domain: str, config: LookupConfig | None = None) -> DomainCheckResult:
    """Convenience function for a single check without managing the checker lifecycle."""
    async with DomainChecker(config=config) as checker:
        return await checker.check_domain(domain)


async def check_domains_parallel(
    domains: list[str],
    concurrency: int = 4,
    config: LookupConfig | None = None,
) -> list[DomainCheckResult]:
    """Convenience function for a batch check without managing the checker lifecycle."""
    async with DomainChecker(config=config) as checker:
        return await checker.check_domains(domains, concurrency=concurrency)
