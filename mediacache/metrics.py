from __future__ import annotations

from prometheus_client import Counter

CACHE_LOOKUPS = Counter(
    "mediacache_cache_lookups_total",
    "Response cache lookups by outcome.",
    ["outcome"],
)
UPSTREAM_FAILURES = Counter(
    "mediacache_upstream_failures_total",
    "Upstream dispatches that failed and were not cached.",
)
MEDIA_RESPONSES = Counter(
    "mediacache_media_responses_total",
    "Media responses by HTTP status code.",
    ["status"],
)
MEDIA_BYTES = Counter(
    "mediacache_media_bytes_total",
    "Media body bytes served.",
)
