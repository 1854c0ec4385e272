"""
ETag helpers for polled endpoints.

Clients poll the dashboard on an interval; when nothing changed they send
back the last ``ETag`` in ``If-None-Match`` and get an empty ``304``.
This is cache validation only, the data itself is recomputed every time.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional


def generate_etag(data: Any) -> str:
    payload = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def is_etag_match(etag: str, if_none_match: Optional[str]) -> bool:
    """True if *etag* is listed in an ``If-None-Match`` header (or ``*``)."""
    if not if_none_match:
        return False
    tags = []
    for raw in if_none_match.split(","):
        tag = raw.strip()
        if tag.startswith("W/"):
            tag = tag[2:]
        tags.append(tag.strip("\"'"))
    return etag in tags or "*" in tags
