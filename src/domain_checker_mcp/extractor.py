"""
Structured-field extraction for taken domains.

Pulls registrar, creation/updated/expiration dates and days until expiration
out of either an RDAP record (entities + events) or free WHOIS text. Every
field is best-effort: a field that cannot be found or parsed is left as None.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any

from .models import DomainInfo, LookupMethod

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# RDAP eventAction values
EVENT_EXPIRATION = "expiration"
EVENT_REGISTRATION = "registration"
EVENT_LAST_CHANGED = "last changed"

# WHOIS line patterns (line-anchored, case-insensitive)
WHOIS_REGISTRAR = re.compile(r"^\s*Registrar:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
WHOIS_EXPIRATION = re.compile(
    r"^\s*(?:Registry Expiry Date|Registrar Registration Expiration Date|Expiry Date|"
    r"Expiration Date|Expires on):[ \t]*(.+)$",
    re.IGNORECASE | re.MULTILINE,
)
WHOIS_CREATION = re.compile(r"^\s*(?:Creation Date|Created on):[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
WHOIS_UPDATED = re.compile(r"^\s*(?:Updated Date|Last Updated):[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)

# Non-ISO date layouts seen in WHOIS output
WHOIS_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%d-%B-%Y",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%a %b %d %H:%M:%S %Z %Y",
)


def parse_date(value: Any) -> datetime | None:
    """
    Parse a date string into an aware UTC datetime.

    Accepts ISO-8601 (including a trailing "Z") and a handful of common WHOIS
    layouts. Returns None for anything unparseable.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    parsed = None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        for fmt in WHOIS_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def days_until(expiration: datetime, now: datetime | None = None) -> int:
    """Whole days from now until expiration, rounded toward negative infinity."""
    now = now or datetime.now(timezone.utc)
    return math.floor((expiration - now).total_seconds() / SECONDS_PER_DAY)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _vcard_formatted_name(entity: dict) -> str | None:
    """
    Return the "fn" property from an entity's jCard, if present.

    jCard layout: ["vcard", [["version", {}, "text", "4.0"], ["fn", {}, "text", "Name"], ...]]
    """
    vcard = entity.get("vcardArray")
    if not isinstance(vcard, list) or len(vcard) < 2:
        return None
    for prop in _as_list(vcard[1]):
        if isinstance(prop, list) and len(prop) >= 4 and prop[0] == "fn":
            name = prop[3]
            if isinstance(name, str) and name.strip():
                return name.strip()
    return None


def _registrar_from_entities(entities: list) -> str | None:
    # Prefer an entity explicitly tagged as registrar
    for entity in entities:
        if isinstance(entity, dict) and "registrar" in _as_list(entity.get("roles")):
            name = _vcard_formatted_name(entity)
            if name:
                return name
    # Otherwise the first entity carrying a formatted name
    for entity in entities:
        if isinstance(entity, dict):
            name = _vcard_formatted_name(entity)
            if name:
                return name
    return None


def _extract_rdap(payload: Any, now: datetime | None) -> DomainInfo:
    if not isinstance(payload, dict):
        return DomainInfo()

    registrar = _registrar_from_entities(_as_list(payload.get("entities")))

    # Event dates are already ISO-8601; they are passed through unchanged
    dates: dict[str, str] = {}
    for event in _as_list(payload.get("events")):
        if not isinstance(event, dict):
            continue
        action = str(event.get("eventAction", "")).lower()
        date = event.get("eventDate")
        if action in (EVENT_EXPIRATION, EVENT_REGISTRATION, EVENT_LAST_CHANGED) and action not in dates:
            if isinstance(date, str) and date.strip():
                dates[action] = date.strip()

    expiration = parse_date(dates.get(EVENT_EXPIRATION))
    return DomainInfo(
        registrar=registrar,
        creation_date=dates.get(EVENT_REGISTRATION),
        updated_date=dates.get(EVENT_LAST_CHANGED),
        expiration_date=dates.get(EVENT_EXPIRATION),
        days_until_expiration=days_until(expiration, now) if expiration else None,
    )


def _first_match(pattern: re.Pattern, text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def payload_text(payload: Any) -> str:
    """Serialize a payload to text (strings pass through unchanged)."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return str(payload)


def _extract_whois(payload: Any, now: datetime | None) -> DomainInfo:
    text = payload_text(payload)

    expiration = parse_date(_first_match(WHOIS_EXPIRATION, text))
    return DomainInfo(
        registrar=_first_match(WHOIS_REGISTRAR, text),
        creation_date=parse_date(_first_match(WHOIS_CREATION, text)),
        updated_date=parse_date(_first_match(WHOIS_UPDATED, text)),
        expiration_date=expiration,
        days_until_expiration=days_until(expiration, now) if expiration else None,
    )


def extract_info(payload: Any, method: LookupMethod, now: datetime | None = None) -> DomainInfo:
    """
    Extract registration metadata from a lookup payload.

    Args:
        payload: Decoded RDAP JSON (REGISTRY) or WHOIS response text (LEGACY)
        method: Which protocol produced the payload
        now: Reference instant for days_until_expiration (default: current time)

    Returns:
        DomainInfo; fields that could not be extracted are None. Never raises.
    """
    try:
        if method == LookupMethod.REGISTRY:
            return _extract_rdap(payload, now)
        return _extract_whois(payload, now)
    except Exception as e:
        logger.debug("Field extraction failed (%s): %s", method.value, e)
        return DomainInfo()
