from typing import Any, Dict, Optional

import httpx

from ..config import settings


class AuthSessionInvalid(RuntimeError):
    """The provider says the token is expired, revoked or malformed."""


class AuthUnavailable(RuntimeError):
    """The provider could not be reached; says nothing about the token."""


class AuthProvider:
    async def get_user(self, access_token: str) -> Dict[str, Any]:
        raise NotImplementedError

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Password grant. Returns at least ``access_token`` and ``user``."""
        raise NotImplementedError

    async def sign_out(self, access_token: str) -> None:
        raise NotImplementedError


class GoTrueAuthProvider(AuthProvider):
    """GoTrue-compatible auth endpoints under ``/auth/v1``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        base_url = base_url or settings.remote_url
        if not base_url:
            raise RuntimeError("REMOTE_URL must be set")
        self.base_url = f"{base_url.rstrip('/')}/auth/v1"
        self.api_key = api_key or settings.remote_api_key or ""
        self.timeout_s = timeout_s or settings.remote_timeout_s
        self._transport = transport

    async def _request(self, method: str, path: str, access_token: Optional[str] = None, **kwargs) -> httpx.Response:
        headers = {"apikey": self.api_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise AuthUnavailable(f"auth {path} unreachable: {e}") from e
        if response.status_code in (400, 401, 403, 422):
            raise AuthSessionInvalid(f"auth {path} rejected: {response.status_code}")
        if response.status_code >= 400:
            raise AuthUnavailable(f"auth {path} returned {response.status_code}")
        return response

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        response = await self._request("GET", "/user", access_token=access_token)
        return response.json()

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return response.json()

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", access_token=access_token)
