"""Best-effort extraction of click metadata from inbound requests."""

import logging
from dataclasses import dataclass

from fastapi import Request

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
DIRECT = "direct"


@dataclass(frozen=True)
class ClickMetadata:
    """Request metadata stored alongside a click."""

    ip: str = UNKNOWN
    user_agent: str = UNKNOWN
    referrer: str = DIRECT


def _first_forwarded_hop(value: str | None) -> str:
    if not value:
        return ""
    return value.split(",")[0].strip()


def extract_click_metadata(request: Request) -> ClickMetadata:
    """
    Extract IP, user agent and referrer from a request.

    Never raises: anything missing or unreadable degrades to the
    ``unknown``/``direct`` sentinels.

    IP resolution order: first ``X-Forwarded-For`` hop, then the socket peer.
    """
    try:
        headers = request.headers
        ip = _first_forwarded_hop(headers.get("x-forwarded-for"))
        if not ip and request.client is not None:
            ip = request.client.host or ""
        user_agent = headers.get("user-agent", "").strip()
        referrer = (headers.get("referer") or headers.get("referrer") or "").strip()
    except Exception as e:
        logger.warning(f"Failed to read click metadata: {str(e)}")
        return ClickMetadata()

    return ClickMetadata(
        ip=ip or UNKNOWN,
        user_agent=user_agent or UNKNOWN,
        referrer=referrer or DIRECT,
    )
