"""
Test suite for the MCP tool surface

The checker is swapped for one backed by scripted lookups, so these tests
exercise validation, raw-data filtering and summaries without the network.

Usage:
    pytest test_server.py
"""

import json

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from domain_checker_mcp import server
from domain_checker_mcp.checker import DomainChecker
from domain_checker_mcp.config import LookupConfig
from domain_checker_mcp.models import DomainCheckResult, DomainStatus, LookupMethod

TAKEN_RECORD = {
    "objectClassName": "domain",
    "entities": [{"roles": ["registrar"], "vcardArray": ["vcard", [["fn", {}, "text", "Registrar Co"]]]}],
    "events": [{"eventAction": "expiration", "eventDate": "2030-01-01T00:00:00Z"}],
}


class FakeRegistry:
    """
    Scripted RDAP answers keyed by domain prefix:
        free*   -> errorCode 404 (available)
        weird*  -> errorCode 400 (available, but suspicious)
        busy*   -> errorCode 503 (unknown)
        slow*   -> 429 error (rate limited)
        other   -> registration record (taken)
    """

    def __init__(self):
        self.calls = []

    async def __call__(self, domain):
        self.calls.append(domain)
        if domain.startswith("free"):
            return {"errorCode": 404, "title": "Not Found"}
        if domain.startswith("weird"):
            return {"errorCode": 400, "title": "Bad Request"}
        if domain.startswith("busy"):
            return {"errorCode": 503, "title": "Service Unavailable"}
        if domain.startswith("slow"):
            raise RuntimeError("RDAP status 429 Too Many Requests")
        return TAKEN_RECORD


async def no_whois(domain):
    raise AssertionError("WHOIS should not be called")


async def no_sleep(delay):
    pass


@pytest.fixture
def registry(monkeypatch):
    registry = FakeRegistry()
    monkeypatch.setattr(
        server,
        "create_checker",
        lambda: DomainChecker(config=LookupConfig(), rdap_query=registry, whois_query=no_whois, sleep=no_sleep),
    )
    return registry


# =============================================================================
# Tool registration
# =============================================================================

@pytest.mark.anyio
async def test_tools_are_registered():
    names = {tool.name for tool in await server.mcp.list_tools()}
    assert {
        "version",
        "check_domain",
        "check_domains_batch",
        "check_name_extensions",
        "check_names_extensions",
    } <= names


def test_version():
    assert server.version() == f"Domain Checker MCP Server version {server.VERSION}"


# =============================================================================
# check_domain
# =============================================================================

@pytest.mark.anyio
async def test_check_domain_taken(registry):
    data = json.loads(await server.check_domain("Example.com"))

    assert data["domain"] == "example.com"
    assert data["available"] is False
    assert data["status"] == "taken"
    assert data["method"] == "registry"
    assert data["domainInfo"]["registrar"] == "Registrar Co"
    assert data["domainInfo"]["expirationDate"] == "2030-01-01T00:00:00Z"
    assert "rawData" not in data
    assert "error" not in data


@pytest.mark.anyio
async def test_check_domain_raw_response_on_request(registry):
    data = json.loads(await server.check_domain("example.com", includeRawResponse=True))
    assert data["rawData"] == TAKEN_RECORD


@pytest.mark.anyio
async def test_check_domain_plain_404_hides_raw_data(registry):
    data = json.loads(await server.check_domain("free.com"))

    assert data["available"] is True
    assert data["status"] == "available"
    assert "rawData" not in data


@pytest.mark.anyio
async def test_check_domain_suspicious_available_keeps_raw_data(registry):
    data = json.loads(await server.check_domain("weird.com"))

    assert data["status"] == "available"
    assert data["rawData"] == {"errorCode": 400, "title": "Bad Request"}


@pytest.mark.anyio
async def test_check_domain_unknown_keeps_raw_data(registry):
    data = json.loads(await server.check_domain("busy.com"))

    assert data["status"] == "unknown"
    assert data["error"] == "Service Unavailable"
    assert data["rawData"]["errorCode"] == 503


@pytest.mark.anyio
async def test_check_domain_rate_limited(registry):
    data = json.loads(await server.check_domain("slow.com"))

    assert data["status"] == "rate_limited"
    assert data["available"] is False
    assert "429" in data["error"]
    assert len(registry.calls) == 3


# =============================================================================
# Batch tools
# =============================================================================

@pytest.mark.anyio
async def test_batch_summary_and_order(registry):
    domains = ["taken1.com", "free1.com", "busy1.com", "slow1.com", "free2.com"]
    data = json.loads(await server.check_domains_batch(domains, concurrency=3))

    assert [r["domain"] for r in data["results"]] == domains
    assert data["total"] == 5
    assert data["available"] == 2
    assert data["taken"] == 1
    assert data["unknown"] == 1
    assert data["rateLimited"] == 1
    assert data["errors"] == 2


@pytest.mark.anyio
async def test_name_extensions(registry):
    data = json.loads(await server.check_name_extensions("free", ["com", "net", "org"]))

    assert data["name"] == "free"
    assert data["total"] == 3
    assert data["available"] == 3
    assert [r["domain"] for r in data["results"]] == ["free.com", "free.net", "free.org"]


@pytest.mark.anyio
async def test_names_extensions_cross_product(registry):
    data = json.loads(await server.check_names_extensions(["a", "b"], ["com", "net"]))

    assert sorted(registry.calls) == ["a.com", "a.net", "b.com", "b.net"]
    assert data["totalNames"] == 2
    assert data["totalExtensions"] == 2
    assert data["totalChecks"] == 4
    assert list(data["resultsByName"]) == ["a", "b"]
    assert [r["domain"] for r in data["resultsByName"]["a"]["domains"]] == ["a.com", "a.net"]

    for key, total_key in [
        ("total", "totalChecks"),
        ("available", "availableTotal"),
        ("taken", "takenTotal"),
        ("errors", "errorsTotal"),
        ("rateLimited", "rateLimitedTotal"),
        ("unknown", "unknownTotal"),
    ]:
        assert sum(group[key] for group in data["resultsByName"].values()) == data[total_key]


@pytest.mark.anyio
async def test_names_extensions_mixed_outcomes(registry):
    data = json.loads(await server.check_names_extensions(["free", "taken", "free"], ["com", "io"]))

    assert data["totalNames"] == 3
    assert data["totalChecks"] == 6
    assert data["availableTotal"] == 4
    assert data["takenTotal"] == 2
    assert list(data["resultsByName"]) == ["free", "taken"]
    assert data["resultsByName"]["free"]["available"] == 4
    assert data["resultsByName"]["taken"]["taken"] == 2


@pytest.mark.anyio
async def test_names_extensions_duplicates_are_checked(registry):
    data = json.loads(await server.check_names_extensions(["a", "a"], ["com", "com"]))

    assert registry.calls == ["a.com"] * 4
    assert data["totalNames"] == 2
    assert data["totalExtensions"] == 2
    assert data["totalChecks"] == 4
    assert data["resultsByName"]["a"]["total"] == 4
    assert len(data["resultsByName"]["a"]["domains"]) == 4


# =============================================================================
# Caller faults
# =============================================================================

@pytest.mark.anyio
@pytest.mark.parametrize("call", [
    lambda: server.check_domain(""),
    lambda: server.check_domain("   "),
    lambda: server.check_domain(None),
    lambda: server.check_domain("example.com", includeRawResponse="yes"),
    lambda: server.check_domains_batch([]),
    lambda: server.check_domains_batch("example.com"),
    lambda: server.check_domains_batch(["a.com", 3]),
    lambda: server.check_domains_batch(["a.com"], concurrency=0),
    lambda: server.check_domains_batch(["a.com"], concurrency=11),
    lambda: server.check_domains_batch(["a.com"], concurrency=True),
    lambda: server.check_domains_batch(["a.com"], concurrency=2.5),
    lambda: server.check_name_extensions("", ["com"]),
    lambda: server.check_name_extensions("name", []),
    lambda: server.check_names_extensions([], ["com"]),
    lambda: server.check_names_extensions(["a"], None),
])
async def test_invalid_arguments_raise_tool_error(registry, call):
    with pytest.raises(ToolError):
        await call()
    assert registry.calls == []


# =============================================================================
# Response shaping helpers
# =============================================================================

def make_result(status, error=None, raw_data=None):
    return DomainCheckResult(
        domain="example.com",
        status=status,
        method=LookupMethod.REGISTRY,
        error=error,
        raw_data=raw_data,
    )


@pytest.mark.parametrize("result, expected", [
    (make_result(DomainStatus.TAKEN, raw_data={"x": 1}), False),
    (make_result(DomainStatus.AVAILABLE, raw_data={"errorCode": 404}), False),
    (make_result(DomainStatus.AVAILABLE, raw_data={"errorCode": 403}), True),
    (make_result(DomainStatus.UNKNOWN, error="boom"), True),
    (make_result(DomainStatus.RATE_LIMITED, raw_data="slow down"), True),
])
def test_should_include_raw(result, expected):
    assert server.should_include_raw(result, False) is expected
    assert server.should_include_raw(result, True) is True


def test_build_domains_is_name_major():
    assert server.build_domains(["a", "b"], ["com", "net"]) == ["a.com", "a.net", "b.com", "b.net"]


def test_summarize_counts_errors_by_presence():
    results = [
        {"available": True, "status": "available"},
        {"available": False, "status": "taken"},
        {"available": False, "status": "unknown", "error": "x"},
        {"available": False, "status": "rate_limited", "error": "y"},
    ]
    assert server.summarize(results) == {
        "total": 4,
        "available": 1,
        "taken": 1,
        "errors": 2,
        "rateLimited": 1,
        "unknown": 1,
    }
