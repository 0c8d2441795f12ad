# gridiron/services/refs.py
from __future__ import annotations

from typing import Any, Dict, Optional

from gridiron.services.espn_common import EspnClient

# ESPN core v2 links are {"$ref": url}; a few payloads use "href" instead
REF_KEYS = ("$ref", "href")


def ref_url(pointer: Any) -> Optional[str]:
    """URL carried by a reference pointer (plain string or {"$ref"|"href": url})."""
    if not pointer:
        return None
    if isinstance(pointer, str):
        return pointer.strip() or None
    if isinstance(pointer, dict):
        for k in REF_KEYS:
            href = pointer.get(k)
            if isinstance(href, str) and href.strip():
                return href.strip()
    return None


class RefResolver:
    """
    Dereferences pointers, fetching each URL at most once.

    One resolver is created per top-level derivation (e.g. one team's injury
    list) and thrown away afterwards, so the memo never outlives a request.
    A failed fetch is memoized as None too.
    """

    def __init__(self, client: EspnClient):
        self.client = client
        self.memo: Dict[str, Any] = {}

    async def deref(self, pointer: Any) -> Optional[Any]:
        href = ref_url(pointer)
        if not href:
            return None
        if href in self.memo:
            return self.memo[href]
        data = await self.client.fetch_json(href)
        self.memo[href] = data
        return data
