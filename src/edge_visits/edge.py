"""
Edge metadata extraction.

Inside a Cloudflare Worker, geolocation and connection details live on
``request.cf``. An ASGI app behind Cloudflare sees the same data as
request headers instead (the "Add visitor location headers" managed
transform, plus CF-Ray and CF-Connecting-IP on every request). This module
turns those headers into an ``EdgeMetadata`` and provides the small header
parsers the recorder needs.

Header reference:
- cf-ipcountry, cf-ipcity, cf-region, cf-region-code, cf-ipcontinent,
  cf-postal-code, cf-metro-code, cf-timezone, cf-iplatitude, cf-iplongitude
- cf-ray: "<ray id>-<colo>", the colo being the serving datacenter
- cf-asn, cf-tls-version, cf-tls-cipher: not sent by Cloudflare itself;
  populated by a Transform Rule when one is configured
"""

from typing import Callable

from fastapi import Request

from .core.models import EdgeMetadata

# ISO-3166 alpha-2 codes of EU member states
EU_COUNTRIES = frozenset({
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "ES", "FI", "FR", "GR",
    "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO",
    "SE", "SI", "SK",
})

# Cloudflare's placeholders for unknown country and Tor exit nodes
UNKNOWN_COUNTRIES = frozenset({"XX", "T1"})

HEADER_FIELDS = {
    "cf-ipcountry": "country",
    "cf-ipcity": "city",
    "cf-region": "region",
    "cf-region-code": "region_code",
    "cf-ipcontinent": "continent",
    "cf-postal-code": "postal_code",
    "cf-metro-code": "metro_code",
    "cf-timezone": "timezone",
    "cf-iplatitude": "latitude",
    "cf-iplongitude": "longitude",
    "cf-asn": "asn",
    "cf-tls-version": "tls_version",
    "cf-tls-cipher": "tls_cipher",
}

EdgeMetadataProvider = Callable[[Request], EdgeMetadata]


def colo_from_ray(ray: str) -> str:
    """Extract the datacenter code from a CF-Ray value ("8f1c2a3b4c5d6e7f-SJC")."""
    if "-" not in ray:
        return ""
    return ray.rsplit("-", 1)[1].upper()


def http_version_label(version: str) -> str:
    """Render the ASGI http_version ("1.1", "2") the way the edge reports it."""
    if not version:
        return ""
    if version.startswith("HTTP/"):
        return version
    return f"HTTP/{version}"


def edge_metadata_from_headers(request: Request) -> EdgeMetadata:
    """Build EdgeMetadata from Cloudflare request headers.

    Missing headers stay empty. ``is_eu_country`` is derived from the
    country code since Cloudflare does not send it as a header.
    """
    headers = request.headers
    values = {
        field: headers.get(header, "").strip()
        for header, field in HEADER_FIELDS.items()
    }

    country = values["country"].upper()
    if country in UNKNOWN_COUNTRIES:
        country = ""
    values["country"] = country

    return EdgeMetadata(
        **values,
        is_eu_country=country in EU_COUNTRIES,
        colo=colo_from_ray(headers.get("cf-ray", "")),
        http_version=http_version_label(request.scope.get("http_version", "")),
    )


# =============================================================================
# CLIENT HEADERS
# =============================================================================

def client_ip(request: Request) -> str:
    """Best-effort client address.

    Prefers CF-Connecting-IP, then the first X-Forwarded-For hop, then the
    socket peer. None of these are authenticated.
    """
    ip = request.headers.get("cf-connecting-ip", "").strip()
    if ip:
        return ip
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client else ""


def primary_language(accept_language: str) -> str:
    """First language tag of an Accept-Language list ("en-US,en;q=0.9" -> "en-US")."""
    first = accept_language.split(",")[0]
    return first.split(";")[0].strip()
