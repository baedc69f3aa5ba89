"""
IPinfo HTTP client.

Used endpoint:
- GET {base_url}/{ip}?token=...  -> provider JSON object

The default base URL is the Lite API (`https://api.ipinfo.io/lite`), which
returns ASN and country/continent fields. The core API
(`https://ipinfo.io`) returns city/region/loc/org instead; both shapes are
accepted by `geo.service`.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from .config import Settings


# IPinfo failures are explicit and separable from other runtime errors.
class IpinfoError(RuntimeError):
    pass


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise IpinfoError("IPINFO_BASE_URL is empty.")
    return base_url.rstrip("/")


class IpinfoClient:
    def __init__(
        self,
        *,
        token: str | None,
        base_url: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = (token or "").strip() or None
        self._base_url = base_url
        self._timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> IpinfoClient:
        return cls(
            token=settings.ipinfo_token,
            base_url=settings.ipinfo_base_url,
            timeout_s=settings.ipinfo_timeout_s,
        )

    async def lookup(self, ip: str) -> dict[str, Any]:
        """
        Fetch the raw provider payload for `ip`.
        """
        if not self._token:
            raise IpinfoError("IPINFO_TOKEN is not set.")
        base_url = _normalize_base_url(self._base_url)

        async with httpx.AsyncClient(
            base_url=base_url,
            timeout=self._timeout_s,
            transport=self._transport,
        ) as client:
            resp = await client.get(
                f"/{quote(ip, safe='')}",
                params={"token": self._token},
                headers={"Accept": "application/json"},
            )

        if resp.status_code != 200:
            # Avoid dumping huge bodies; include a small snippet.
            body = resp.text[:300]
            raise IpinfoError(f"IPinfo request failed: {resp.status_code} {body}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise IpinfoError("IPinfo returned a non-JSON body.") from exc

        if not isinstance(data, dict):
            raise IpinfoError("IPinfo returned a non-object body.")
        return data
