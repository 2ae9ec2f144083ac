from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .provider import RemoteStore, RemoteStoreError, RemoteAuthError


class RestRemoteStore(RemoteStore):
    """PostgREST-style table endpoint (``/rest/v1/<table>``) with row-level security.

    The caller's access token goes in ``Authorization`` so the server-side
    policy can check ``user_id`` against it on every read and write.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        base_url = base_url or settings.remote_url
        if not base_url:
            raise RuntimeError("REMOTE_URL must be set")
        self.api_key = api_key or settings.remote_api_key or ""
        self.table = table or settings.remote_table
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{self.table}"
        self.timeout_s = timeout_s or settings.remote_timeout_s
        self._transport = transport

    def _headers(self, access_token: str, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, access_token: str, **kwargs) -> httpx.Response:
        headers = self._headers(access_token, **kwargs.pop("extra_headers", {}))
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.request(method, self.endpoint, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {self.table} failed: {e}") from e
        if response.status_code in (401, 403):
            raise RemoteAuthError(
                f"{method} {self.table} rejected credentials: {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {self.table} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    async def insert(self, row: Dict[str, Any], access_token: str) -> None:
        # Uniqueness on id is the guard against overlapping sweeps re-sending a row
        await self._request(
            "POST",
            access_token,
            params={"on_conflict": "id"},
            json=[row],
            extra_headers={"Prefer": "resolution=ignore-duplicates,return=minimal"},
        )

    async def select_for_owner(self, owner_id: str, access_token: str) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET",
            access_token,
            params={"select": "*", "user_id": f"eq.{owner_id}", "order": "created_at.desc"},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteStoreError(f"GET {self.table} returned invalid JSON") from e
        if not isinstance(data, list):
            raise RemoteStoreError(f"GET {self.table} returned {type(data).__name__}, expected list")
        return data

    async def delete(self, burn_id: str, access_token: str) -> None:
        await self._request("DELETE", access_token, params={"id": f"eq.{burn_id}"})
