"""
Result types shared by the lookup engine and the MCP tools.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class DomainStatus(Enum):
    """Status categories for domain availability checks."""

    AVAILABLE = "available"  # can register
    TAKEN = "taken"  # registration record found
    UNKNOWN = "unknown"  # neither protocol could confirm
    RATE_LIMITED = "rate_limited"  # upstream refused service - RETRY LATER


class LookupMethod(Enum):
    """Which lookup path produced a result."""

    REGISTRY = "registry"  # RDAP (structured JSON)
    LEGACY = "legacy"  # WHOIS (free text)


# RDAP event dates are kept as the registry sent them; WHOIS dates are parsed
Timestamp = datetime | str


def _format_timestamp(value: Timestamp | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class DomainInfo:
    """Best-effort registration metadata for a taken domain."""

    registrar: str | None = None
    creation_date: Timestamp | None = None
    updated_date: Timestamp | None = None
    expiration_date: Timestamp | None = None
    days_until_expiration: int | None = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.registrar,
                self.creation_date,
                self.updated_date,
                self.expiration_date,
                self.days_until_expiration,
            )
        )

    def to_dict(self) -> dict:
        data = {
            "registrar": self.registrar,
            "creationDate": _format_timestamp(self.creation_date),
            "updatedDate": _format_timestamp(self.updated_date),
            "expirationDate": _format_timestamp(self.expiration_date),
            "daysUntilExpiration": self.days_until_expiration,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class DomainCheckResult:
    """Result of a domain availability check."""

    domain: str
    status: DomainStatus
    method: LookupMethod
    error: str | None = None
    raw_data: Any = None
    domain_info: DomainInfo | None = None

    @property
    def available(self) -> bool:
        """True only if confirmed available."""
        return self.status == DomainStatus.AVAILABLE

    def to_dict(self, include_raw: bool = True) -> dict:
        """Serialize to the JSON shape returned by the MCP tools."""
        data: dict[str, Any] = {
            "domain": self.domain,
            "available": self.available,
            "status": self.status.value,
            "method": self.method.value,
        }
        if self.error is not None:
            data["error"] = self.error
        if include_raw and self.raw_data is not None:
            data["rawData"] = self.raw_data
        if self.domain_info is not None and not self.domain_info.is_empty():
            data["domainInfo"] = self.domain_info.to_dict()
        return data
