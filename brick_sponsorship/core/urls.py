"""
Base URL resolution for checkout redirects.

Resolution order:
1. Configured public domain
2. Request headers (host + forwarded protocol)
3. Local development default
"""
from typing import Mapping, NamedTuple, Optional

FALLBACK_BASE_URL = "http://localhost:3000"
LOCAL_HOSTS = ("localhost", "127.0.0.1")

SUCCESS_PATH = "/success?session_id={CHECKOUT_SESSION_ID}"


class BaseUrl(NamedTuple):
    """Resolved base URL and where it came from."""

    url: str
    source: str


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette headers are case-insensitive already; plain dicts may not be.
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    if value is None:
        return None
    value = value.split(",")[0].strip()
    return value or None


def _hostname(host: str) -> str:
    if host.startswith("["):
        return host[1:].split("]")[0]
    return host.rsplit(":", 1)[0] if host.count(":") == 1 else host


def infer_scheme(host: str, headers: Mapping[str, str]) -> str:
    """Pick http or https for a host from forwarding headers."""
    proto = _header(headers, "x-forwarded-proto") or _header(headers, "x-forwarded-protocol")
    if proto:
        return proto.lower()

    forwarded_ssl = _header(headers, "x-forwarded-ssl")
    if forwarded_ssl and forwarded_ssl.lower() == "on":
        return "https"

    return "http" if _hostname(host).lower() in LOCAL_HOSTS else "https"


def resolve_base_url(
    public_domain: Optional[str], headers: Optional[Mapping[str, str]] = None
) -> BaseUrl:
    """
    Resolve the base URL used for success and cancel redirects.

    Args:
        public_domain: Explicitly configured public URL, if any
        headers: Inbound request headers

    Returns:
        BaseUrl: url without a trailing slash, plus its source
    """
    if public_domain:
        return BaseUrl(public_domain.rstrip("/"), "environment variable")

    host = _header(headers or {}, "host")
    if host:
        return BaseUrl(f"{infer_scheme(host, headers or {})}://{host}", "request headers")

    return BaseUrl(FALLBACK_BASE_URL, "fallback")


def success_url(base_url: str) -> str:
    """Success redirect; Stripe substitutes the session id placeholder."""
    return f"{base_url}{SUCCESS_PATH}"


def cancel_url(base_url: str) -> str:
    """Cancel redirect back to the landing page."""
    return base_url
