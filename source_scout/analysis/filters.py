# source_scout/analysis/filters.py
"""
Heuristics separating application data exchanges from tracking/telemetry noise.
"""
from __future__ import annotations

import re
from typing import FrozenSet, Optional, Sequence
from urllib.parse import urlparse

ANALYTICS_DOMAINS: FrozenSet[str] = frozenset(
    {
        "google-analytics.com",
        "googletagmanager.com",
        "googlesyndication.com",
        "googleadservices.com",
        "doubleclick.net",
        "facebook.net",
        "connect.facebook.net",
        "analytics.facebook.com",
        "segment.io",
        "segment.com",
        "cdn.segment.com",
        "api.segment.io",
        "mixpanel.com",
        "mxpnl.com",
        "hotjar.com",
        "hotjar.io",
        "clarity.ms",
        "newrelic.com",
        "nr-data.net",
        "sentry.io",
        "sentry-cdn.com",
        "fullstory.com",
        "amplitude.com",
        "heapanalytics.com",
        "heap-api.com",
        "optimizely.com",
        "cdn.optimizely.com",
        "intercom.io",
        "intercomcdn.com",
        "crisp.chat",
        "drift.com",
        "hubspot.com",
        "hs-analytics.net",
        "hsforms.com",
        "branch.io",
        "app.link",
        "appsflyer.com",
        "adjust.com",
        "kochava.com",
        "bugsnag.com",
        "logrocket.com",
        "logrocket.io",
        "smartlook.com",
        "mouseflow.com",
        "luckyorange.com",
        "crazyegg.com",
        "clicktale.net",
        "quantserve.com",
        "scorecardresearch.com",
        "chartbeat.com",
        "parsely.com",
        "pingdom.net",
        "speedcurve.com",
        "datadoghq.com",
        "browser-intake-datadoghq.com",
        "rum.browser-intake-datadoghq.com",
        "onesignal.com",
        "pusher.com",
        "pubnub.com",
        "adsrvr.org",
        "adroll.com",
        "taboola.com",
        "outbrain.com",
        "criteo.com",
        "criteo.net",
        "amazon-adsystem.com",
        "ads-twitter.com",
        "ads.linkedin.com",
        "snap.licdn.com",
        "px.ads.linkedin.com",
        "bat.bing.com",
        "mc.yandex.ru",
        "top-fwz1.mail.ru",
        "analytics.tiktok.com",
    }
)

ANALYTICS_PATH_PATTERNS: Sequence[re.Pattern[str]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/collect\b",
        r"/track\b",
        r"/beacon\b",
        r"/pixel\b",
        r"/analytics\b",
        r"/__analytics",
        r"/log\b",
        r"/telemetry\b",
        r"/metrics\b",
        r"/events?\b",
        r"/ping\b",
        r"/heartbeat\b",
        r"/v1/batch\b",  # Segment
        r"/v1/t\b",
        r"/v1/p\b",
        r"/v1/i\b",
        r"/r/collect\b",  # Google Analytics
        r"/j/collect\b",
        r"/g/collect\b",
        r"/mp/collect\b",
        r"\.gif\?",  # tracking pixels
        r"\.png\?.*utm",
        r"/tr\?",  # Facebook pixel
        r"/xd_arbiter",
        r"/sdk\.js",
        r"/gtag/",
        r"/gtm/",
    )
)

EXCLUDED_RESOURCE_TYPES: FrozenSet[str] = frozenset(
    {"image", "media", "font", "stylesheet", "manifest", "preflight"}
)
DATA_RESOURCE_TYPES: FrozenSet[str] = frozenset({"xhr", "fetch"})

MIN_PAYLOAD_LENGTH = 50
_EMPTY_PAYLOADS = frozenset({"", "{}", "[]", "null"})
_ACK_RE = re.compile(r'^(ok|success|1|true|"ok"|"success")$', re.IGNORECASE)
_DATA_CONTENT_MARKERS = ("json", "xml", "html", "text/plain")


def _hostname(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_analytics_domain(url: str) -> bool:
    """Host equals or is a subdomain of a known tracking domain."""
    host = _hostname(url)
    if not host:
        return False
    host = host.lower().rstrip(".")
    return any(host == d or host.endswith("." + d) for d in ANALYTICS_DOMAINS)


def is_analytics_path(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    path_and_query = parsed.path + (f"?{parsed.query}" if parsed.query else "")
    return any(p.search(path_and_query) for p in ANALYTICS_PATH_PATTERNS)


def is_trivial_payload(body: Optional[str]) -> bool:
    """Absent, tiny, empty-structure or bare acknowledgement bodies carry no data."""
    if not body or len(body) < MIN_PAYLOAD_LENGTH:
        return True
    trimmed = body.strip()
    return trimmed in _EMPTY_PAYLOADS or bool(_ACK_RE.match(trimmed))


def is_analytics_request(url: str) -> bool:
    return is_analytics_domain(url) or is_analytics_path(url)


def is_data_content_type(content_type: str) -> bool:
    ct = content_type.lower()
    return any(marker in ct for marker in _DATA_CONTENT_MARKERS)


def is_core_data_request(
    url: str,
    content_type: str,
    resource_type: str,
    body: Optional[str] = None,
) -> bool:
    """True when the exchange may carry application data and is worth classifying."""
    if resource_type in EXCLUDED_RESOURCE_TYPES or resource_type not in DATA_RESOURCE_TYPES:
        return False
    if is_analytics_request(url):
        return False
    if not is_data_content_type(content_type):
        return False
    return not is_trivial_payload(body)


__all__ = [
    "ANALYTICS_DOMAINS",
    "ANALYTICS_PATH_PATTERNS",
    "EXCLUDED_RESOURCE_TYPES",
    "is_analytics_domain",
    "is_analytics_path",
    "is_analytics_request",
    "is_core_data_request",
    "is_data_content_type",
    "is_trivial_payload",
]
