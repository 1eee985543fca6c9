"""Shared webhook helpers: URL validation, signing, cost normalization.

Signing uses one canonical serialization so both the ``signature`` body
field and the ``X-Webhook-Signature`` header can be verified by receivers:

    canonical = compact JSON of the payload without ``signature``
    signature = HMAC-SHA256(secret, canonical) as hex
    body      = compact JSON of the payload with ``signature`` appended last
"""

import hashlib
import hmac
import ipaddress
import json
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import httpx

from infrastructure.notifications.exceptions import NotificationConfigurationError

SIGNATURE_FIELD = "signature"
SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="

ALLOWED_SCHEMES = frozenset({"http", "https"})
BLOCKED_HOSTNAMES = frozenset({"localhost", "localhost.localdomain"})
BLOCKED_HOST_SUFFIXES = (".localhost", ".local", ".internal")


def canonical_json(payload: Mapping[str, Any]) -> str:
    """Compact JSON in insertion order with non-ASCII characters preserved."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _signing_input(payload: Mapping[str, Any]) -> bytes:
    unsigned = {k: v for k, v in payload.items() if k != SIGNATURE_FIELD}
    return canonical_json(unsigned).encode("utf-8")


def sign_webhook(payload: Mapping[str, Any], secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical payload (``signature`` excluded)."""
    if not secret:
        raise ValueError("Webhook secret must not be empty")
    return hmac.new(
        secret.encode("utf-8"), _signing_input(payload), hashlib.sha256
    ).hexdigest()


def verify_webhook_signature(
    payload: Mapping[str, Any], secret: str, signature: Optional[str]
) -> bool:
    """Check a signature taken from the body or the header.

    Accepts the bare hex digest or the ``sha256=<hex>`` header form and
    compares in constant time.
    """
    if not signature or not secret:
        return False
    candidate = signature.strip()
    if candidate.startswith(SIGNATURE_PREFIX):
        candidate = candidate[len(SIGNATURE_PREFIX):]
    expected = sign_webhook(payload, secret)
    return hmac.compare_digest(expected, candidate.lower())


def signature_header(signature: str) -> Dict[str, str]:
    return {SIGNATURE_HEADER: f"{SIGNATURE_PREFIX}{signature}"}


def _is_private_host(host: str) -> bool:
    host = host.strip("[]").rstrip(".").lower()
    if host in BLOCKED_HOSTNAMES or host.endswith(BLOCKED_HOST_SUFFIXES):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )


def validate_webhook_url(url: Optional[str], allow_private: bool = False) -> str:
    """Validate a user-supplied webhook URL.

    Only http(s) URLs with a host that httpx can parse are accepted. Unless
    ``allow_private`` is set, hosts that are literal private/loopback/link-local/reserved
    addresses or local-only names are rejected. No DNS lookups are made.

    Returns:
        The URL, stripped of surrounding whitespace

    Raises:
        NotificationConfigurationError: when the URL is unusable
    """
    if not url or not isinstance(url, str) or not url.strip():
        raise NotificationConfigurationError("Webhook URL is empty")

    url = url.strip()
    try:
        parsed = urlparse(url)
        host = parsed.hostname
        port = parsed.port
    except ValueError as exc:
        raise NotificationConfigurationError(f"Invalid webhook URL: {exc}") from exc

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise NotificationConfigurationError(
            f"Invalid webhook URL: scheme '{parsed.scheme}' is not http or https"
        )
    if not host:
        raise NotificationConfigurationError("Invalid webhook URL: missing host")
    if port == 0:
        raise NotificationConfigurationError("Invalid webhook URL: port 0")
    try:
        httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise NotificationConfigurationError(f"Invalid webhook URL: {exc}") from exc
    if not allow_private and _is_private_host(host):
        raise NotificationConfigurationError(
            f"Invalid webhook URL: host '{host}' is a private or local address"
        )
    return url


def normalize_cost_usd(value: Any) -> Optional[str]:
    """Unwrap driver decimal wrappers into a plain decimal string.

    ``None`` -> ``None``; ``{"$numberDecimal": "1.23"}`` -> ``"1.23"``;
    numbers and ``Decimal`` -> their plain string; strings pass through.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        if "$numberDecimal" in value:
            return normalize_cost_usd(value["$numberDecimal"])
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (int, float)):
        return format(Decimal(str(value)), "f")
    if isinstance(value, str):
        return value.strip() or None
    return str(value)
