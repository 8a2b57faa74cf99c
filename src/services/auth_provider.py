"""Supabase Auth (GoTrue) client for reset emails and auth credentials."""

import logging
from typing import Any

import httpx

from src.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """Error returned by the auth provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Check if the provider reported an unknown user."""
        return self.status_code == 404 or "not found" in self.message.lower()


class AuthProviderClient:
    """Service for the Supabase Auth REST API, using the service role key."""

    PAGE_SIZE = 100

    def __init__(
        self,
        base_url: str | None,
        service_key: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.service_key = service_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthProviderClient":
        """Build a client from application settings."""
        return cls(
            settings.supabase_url,
            settings.supabase_service_role_key,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Check if the auth API URL and key are set."""
        return bool(self.base_url and self.service_key)

    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        """Ask the provider to email a password reset link."""
        await self._request(
            "POST", "/recover", params={"redirect_to": redirect_to}, json={"email": email}
        )

    async def create_user(self, email: str, password: str) -> str | None:
        """Create a confirmed auth user and return its ID."""
        data = await self._request(
            "POST",
            "/admin/users",
            json={"email": email, "password": password, "email_confirm": True},
        )
        return data.get("id") if isinstance(data, dict) else None

    async def find_user_id(self, email: str) -> str | None:
        """Find an auth user's ID by email, paging through the admin list."""
        page = 1
        while True:
            data = await self._request(
                "GET", "/admin/users", params={"page": page, "per_page": self.PAGE_SIZE}
            )
            users = data.get("users", []) if isinstance(data, dict) else []
            for user in users:
                if user.get("email") == email:
                    return user.get("id")
            if len(users) < self.PAGE_SIZE:
                return None
            page += 1

    async def update_password(self, user_id: str, password: str) -> None:
        """Set a new password for an auth user."""
        await self._request("PUT", f"/admin/users/{user_id}", json={"password": password})

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if not self.is_configured:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
        }
        async with httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method, path, params=params, json=json, headers=headers
                )
            except httpx.HTTPError as e:
                raise AuthProviderError(f"Auth provider unreachable: {e}") from e

        if response.is_error:
            raise AuthProviderError(_error_message(response), status_code=response.status_code)
        if not response.content:
            return {}
        return response.json()


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's error text out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"
