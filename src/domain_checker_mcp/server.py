"""
Domain Checker MCP Server

An MCP server for checking domain name availability:
- RDAP (structured registry records) first
- WHOIS (free text) as the fallback
- Bulk checks run in parallel under a bounded concurrency
"""

import json
import logging
import os
from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from .checker import DomainChecker
from .config import get_lookup_config
from .models import DomainCheckResult, DomainStatus

# Suppress httpx request logging by default
# Set DOMAIN_CHECKER_DEBUG=1 to enable verbose HTTP logging
if not os.environ.get("DOMAIN_CHECKER_DEBUG"):
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Server version
VERSION = "0.2.0"

# Initialize the MCP server
mcp = FastMCP("domain-checker")
mcp._mcp_server.version = VERSION

# =============================================================================
# Constants
# =============================================================================

DEFAULT_CONCURRENCY = 4
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10

Concurrency = Annotated[
    int,
    Field(ge=MIN_CONCURRENCY, le=MAX_CONCURRENCY, description="Number of parallel workers (default: 4)"),
]
IncludeRaw = Annotated[
    bool,
    Field(description="Include raw RDAP/WHOIS response data (default: false)"),
]


def create_checker() -> DomainChecker:
    """Build a checker from the effective configuration."""
    return DomainChecker(config=get_lookup_config())


# =============================================================================
# Argument validation (caller faults)
# =============================================================================

def _require_string(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ToolError(f"{field} parameter is required and must be a non-empty string")
    return value


def _require_string_list(value: Any, field: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ToolError(f"{field} parameter is required and must be a non-empty array")
    if not all(isinstance(item, str) for item in value):
        raise ToolError(f"{field} parameter must contain only strings")
    return value


def _require_concurrency(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ToolError("concurrency must be an integer")
    if not MIN_CONCURRENCY <= value <= MAX_CONCURRENCY:
        raise ToolError(f"concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}")
    return value


def _require_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise ToolError(f"{field} must be a boolean")
    return value


# =============================================================================
# Response shaping
# =============================================================================

def should_include_raw(result: DomainCheckResult, include_raw_response: bool) -> bool:
    """
    Decide whether rawData is worth returning.

    Raw data is kept when the caller asked for it, or when the classification
    is suspicious enough to warrant inspection: unknown/rate_limited status,
    a non-empty error, or "available" backed by an errorCode other than 404.
    """
    if include_raw_response:
        return True
    if result.status in (DomainStatus.UNKNOWN, DomainStatus.RATE_LIMITED):
        return True
    if result.error:
        return True
    if result.available and isinstance(result.raw_data, dict):
        code = result.raw_data.get("errorCode")
        if code and code != 404:
            return True
    return False


def filter_result(result: DomainCheckResult, include_raw_response: bool) -> dict:
    """Serialize a result, dropping rawData unless it is wanted."""
    return result.to_dict(include_raw=should_include_raw(result, include_raw_response))


def summarize(results: list[dict]) -> dict:
    """Count results by outcome."""
    return {
        "total": len(results),
        "available": sum(1 for r in results if r["available"]),
        "taken": sum(1 for r in results if r["status"] == DomainStatus.TAKEN.value),
        "errors": sum(1 for r in results if r.get("error")),
        "rateLimited": sum(1 for r in results if r["status"] == DomainStatus.RATE_LIMITED.value),
        "unknown": sum(1 for r in results if r["status"] == DomainStatus.UNKNOWN.value),
    }


def build_domains(names: list[str], extensions: list[str]) -> list[str]:
    """Cross product of names and extensions, name-major: a.com, a.net, b.com, ..."""
    return [f"{name}.{ext}" for name in names for ext in extensions]


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


async def _check_all(domains: list[str], concurrency: int, include_raw_response: bool) -> list[dict]:
    async with create_checker() as checker:
        results = await checker.check_domains(domains, concurrency=concurrency)
    return [filter_result(r, include_raw_response) for r in results]


# =============================================================================
# MCP Tools
# =============================================================================

@mcp.tool()
def version() -> str:
    """
    Get the version of the Domain Checker MCP server.

    Returns:
        Version string including server name and version number.
    """
    return f"Domain Checker MCP Server version {VERSION}"


@mcp.tool()
async def check_domain(
    domain: Annotated[str, Field(description="The domain name to check (e.g., example.com)")],
    includeRawResponse: IncludeRaw = False,
) -> str:
    """
    Check if a domain is available for registration.

    Args:
        domain: The domain name to check (e.g., example.com)
        includeRawResponse: Include raw RDAP/WHOIS response data

    Returns:
        JSON with domain, available, status (available/taken/unknown/rate_limited),
        method (registry/legacy), and optional error, rawData and domainInfo.
    """
    domain = _require_string(domain, "domain")
    include_raw = _require_bool(includeRawResponse, "includeRawResponse")

    async with create_checker() as checker:
        result = await checker.check_domain(domain)

    return _to_json(filter_result(result, include_raw))


@mcp.tool()
async def check_domains_batch(
    domains: Annotated[list[str], Field(min_length=1, description="Array of domain names to check")],
    concurrency: Concurrency = DEFAULT_CONCURRENCY,
    includeRawResponse: IncludeRaw = False,
) -> str:
    """
    Check availability of multiple domains in parallel.

    Args:
        domains: Array of domain names to check
        concurrency: Number of parallel workers, 1-10 (default: 4)
        includeRawResponse: Include raw RDAP/WHOIS response data

    Returns:
        JSON with total/available/taken/errors/rateLimited/unknown counts and
        results in input order.
    """
    domains = _require_string_list(domains, "domains")
    concurrency = _require_concurrency(concurrency)
    include_raw = _require_bool(includeRawResponse, "includeRawResponse")

    results = await _check_all(domains, concurrency, include_raw)
    return _to_json({**summarize(results), "results": results})


@mcp.tool()
async def check_name_extensions(
    name: Annotated[str, Field(description='The domain name without extension (e.g., "example")')],
    extensions: Annotated[
        list[str],
        Field(min_length=1, description='Array of extensions to check (e.g., ["com", "net", "org"])'),
    ],
    concurrency: Concurrency = DEFAULT_CONCURRENCY,
    includeRawResponse: IncludeRaw = False,
) -> str:
    """
    Check availability of a single name with multiple extensions.

    Args:
        name: The domain name without extension (e.g., "example")
        extensions: Extensions to check (e.g., ["com", "net", "org"])
        concurrency: Number of parallel workers, 1-10 (default: 4)
        includeRawResponse: Include raw RDAP/WHOIS response data

    Returns:
        JSON with the name, outcome counts and per-domain results.
    """
    name = _require_string(name, "name")
    extensions = _require_string_list(extensions, "extensions")
    concurrency = _require_concurrency(concurrency)
    include_raw = _require_bool(includeRawResponse, "includeRawResponse")

    results = await _check_all(build_domains([name], extensions), concurrency, include_raw)
    return _to_json({"name": name, **summarize(results), "results": results})


@mcp.tool()
async def check_names_extensions(
    names: Annotated[list[str], Field(min_length=1, description="Array of domain names without extensions")],
    extensions: Annotated[
        list[str],
        Field(min_length=1, description="Array of extensions to check for each name"),
    ],
    concurrency: Concurrency = DEFAULT_CONCURRENCY,
    includeRawResponse: IncludeRaw = False,
) -> str:
    """
    Check availability of multiple names with multiple extensions.

    Every name is combined with every extension.

    Args:
        names: Domain names without extensions
        extensions: Extensions to check for each name
        concurrency: Number of parallel workers, 1-10 (default: 4)
        includeRawResponse: Include raw RDAP/WHOIS response data

    Returns:
        JSON with global totals and a per-name breakdown (resultsByName).
    """
    names = _require_string_list(names, "names")
    extensions = _require_string_list(extensions, "extensions")
    concurrency = _require_concurrency(concurrency)
    include_raw = _require_bool(includeRawResponse, "includeRawResponse")

    results = await _check_all(build_domains(names, extensions), concurrency, include_raw)

    # Results come back name-major, one slice of len(extensions) per name.
    # A repeated name gathers every slice it produced.
    grouped: dict[str, list[dict]] = {}
    width = len(extensions)
    for i, name in enumerate(names):
        grouped.setdefault(name, []).extend(results[i * width:(i + 1) * width])
    results_by_name = {
        name: {**summarize(name_results), "domains": name_results}
        for name, name_results in grouped.items()
    }

    totals = summarize(results)
    response = {
        "totalNames": len(names),
        "totalExtensions": width,
        "totalChecks": totals["total"],
        "availableTotal": totals["available"],
        "takenTotal": totals["taken"],
        "errorsTotal": totals["errors"],
        "rateLimitedTotal": totals["rateLimited"],
        "unknownTotal": totals["unknown"],
        "resultsByName": results_by_name,
    }
    return _to_json(response)
