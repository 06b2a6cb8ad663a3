"""Best-effort client identification for rate limiting.

The returned value is an opaque key. It comes from request headers that any
client can forge, so it must never be treated as a trusted network address.
"""

from __future__ import annotations

from collections.abc import Mapping

UNKNOWN_CLIENT = "unknown"


def resolve_client_id(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_connecting_ip = headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip

    return UNKNOWN_CLIENT
