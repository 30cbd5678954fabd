"""REST client for the marketplace backend.

Only the endpoints used by the client core live here: auth, orders and
Mercado Pago preferences. Every failure is raised as
:class:`~marketplace.core.exceptions.ApiError`; callers decide how to surface
it.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from marketplace.core.constants import API_TIMEOUT_SECONDS, DEFAULT_API_URL
from marketplace.core.exceptions import ApiError

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin async wrapper over the backend REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout_seconds: int = API_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @staticmethod
    def _auth_headers(token: str | None) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        payload: Any | None = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json", **self._auth_headers(token)}
        session = await self._get_session()

        try:
            async with session.request(method, url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    try:
                        error_data = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError):
                        error_data = {}
                    if not isinstance(error_data, dict):
                        error_data = {}
                    message = (
                        error_data.get("message")
                        or error_data.get("error")
                        or f"HTTP {response.status}"
                    )
                    raise ApiError(str(message), status=response.status)

                if response.status == 204:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as exc:
                    raise ApiError(f"Invalid JSON from {endpoint}", status=response.status) from exc
        except ApiError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("%s %s timed out", method, endpoint)
            raise ApiError("Tiempo de espera agotado", status=0) from exc
        except aiohttp.ClientError as exc:
            logger.error("%s %s failed: %s", method, endpoint, exc)
            raise ApiError(str(exc) or "Error de conexión", status=0) from exc

    # ---------- auth ----------

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._request("POST", "/users/login", payload={"email": email, "password": password})

    async def google_login(self, id_token: str) -> dict[str, Any]:
        return await self._request("POST", "/users/oauth/google", payload={"idToken": id_token})

    async def register(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/users/register", payload=payload)

    async def update_me(self, token: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", "/users/me", token=token, payload=updates)

    # ---------- orders ----------

    async def list_orders(self, token: str) -> Any:
        return await self._request("GET", "/orders", token=token)

    async def get_order(self, token: str, order_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/orders/{order_id}", token=token)

    async def create_order(self, token: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/orders", token=token, payload=payload)

    async def get_order_invoice(self, token: str, order_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/orders/{order_id}/invoice", token=token)

    # ---------- payments ----------

    async def create_mercado_pago_preference(self, token: str, payload: dict[str, Any]) -> dict[str, Any]:
        logger.info("Creating Mercado Pago preference for %s", sorted(payload))
        return await self._request(
            "POST", "/payments/mercadopago/preference", token=token, payload=payload
        )
