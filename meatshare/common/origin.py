# meatshare/common/origin.py
from __future__ import annotations

from urllib.parse import urlparse

from fastapi import Request

from meatshare.config import get_settings


def resolve_origin(request: Request) -> str:
    """
    Redirect base for Stripe success/cancel/return URLs.

    The browser's Origin header wins; without one (server-to-server calls)
    the public site URL is used.
    """
    origin = (request.headers.get("origin") or "").strip()
    parsed = urlparse(origin)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"
    return get_settings().public_site_url
