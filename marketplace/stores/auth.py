"""Session store: current user and bearer token.

Authentication itself is the backend's job; this store only keeps the
session, persists it, and rescopes the user-bound stores when it changes.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from marketplace.core.constants import TOKEN_KEY, USER_KEY
from marketplace.core.exceptions import ApiError, AuthorizationException
from marketplace.core.notifications import Notifier
from marketplace.core.persistence import JsonPersistence
from marketplace.domain.user import User

if TYPE_CHECKING:
    from marketplace.integrations.api_client import ApiClient
    from marketplace.stores.favorites import FavoritesStore
    from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    return email.strip().lower()


class AuthStore:
    def __init__(
        self,
        api: ApiClient,
        persistence: JsonPersistence,
        notifier: Notifier,
        *,
        favorites: FavoritesStore | None = None,
        orders: OrderStore | None = None,
    ):
        self._api = api
        self._persistence = persistence
        self._notifier = notifier
        self._favorites = favorites
        self._orders = orders
        self.user: User | None = None
        self.token: str | None = None
        self.loading = False
        self.error: str | None = None
        self.is_initialized = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user else None

    def _set_session(self, user: User | None, token: str | None) -> None:
        self.user = user
        self.token = token
        if self._favorites is not None:
            self._favorites.set_user_scope(self.user_id)

    def _persist_session(self, user: User, token: str) -> None:
        self._persistence.save(USER_KEY, user.to_storage())
        # Token is stored raw, not JSON-encoded.
        self._persistence.write_raw(TOKEN_KEY, token)

    async def _authenticate(self, call, success_title: str, success_message: str, failure_text: str):
        self.loading = True
        self.error = None
        try:
            data = await call()
            user = User.model_validate(data["user"])
            token = str(data["token"])
        except (ApiError, KeyError, TypeError, ValidationError) as exc:
            message = exc.message if isinstance(exc, ApiError) else failure_text
            self.error = message
            self.loading = False
            self._notifier.error("Error de autenticación", message)
            if isinstance(exc, ApiError):
                raise
            raise ApiError(message, status=0) from exc

        self._persist_session(user, token)
        self._set_session(user, token)
        self.loading = False
        self._notifier.success(success_title, success_message)
        logger.info("User %s signed in as %s", user.id, user.role)
        return data

    async def login(self, email: str, password: str) -> dict[str, Any]:
        normalized = normalize_email(email) or ""
        return await self._authenticate(
            lambda: self._api.login(normalized, password),
            "Inicio de sesión exitoso",
            "Bienvenido de vuelta",
            "Error al iniciar sesión",
        )

    async def google_login(self, id_token: str) -> dict[str, Any]:
        return await self._authenticate(
            lambda: self._api.google_login(id_token),
            "Inicio de sesión con Google exitoso",
            "Bienvenido",
            "Error al iniciar con Google",
        )

    async def register(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an account; the user still has to log in afterwards."""
        self.loading = True
        self.error = None
        normalized = {**payload}
        if "email" in normalized:
            normalized["email"] = normalize_email(normalized["email"])
        try:
            data = await self._api.register(normalized)
        except ApiError as exc:
            self.error = exc.message or "Error en el registro"
            self.loading = False
            self._notifier.error("Error de registro", self.error)
            raise
        self.loading = False
        self._notifier.success("Registro exitoso", "Tu cuenta ha sido creada")
        return data

    def logout(self) -> None:
        self._persistence.remove(USER_KEY, TOKEN_KEY)
        self._set_session(None, None)
        if self._orders is not None:
            self._orders.clear_orders()
        self._notifier.info("Sesión cerrada", "Has salido de tu cuenta")

    def load_persisted_data(self) -> None:
        """Restore the session; corrupt data wipes both keys. Never raises."""
        self.loading = True
        try:
            raw_user = self._persistence.read_raw(USER_KEY)
            token = self._persistence.read_raw(TOKEN_KEY)
            if raw_user and token:
                try:
                    user = User.model_validate_json(raw_user)
                except ValidationError as exc:
                    logger.error("Error parsing user data: %s", exc)
                    self._persistence.remove(USER_KEY, TOKEN_KEY)
                    self._set_session(None, None)
                else:
                    self._set_session(user, token)
            else:
                self._set_session(None, None)
        except Exception as exc:
            logger.error("Error loading persisted auth data: %s", exc)
            self._set_session(None, None)
        finally:
            self.is_initialized = True
            self.loading = False

    def clear_error(self) -> None:
        self.error = None

    async def update_user_profile(self, updates: dict[str, Any]) -> User:
        if not self.user or not self.token:
            raise AuthorizationException("User not authenticated")

        self.loading = True
        self.error = None
        try:
            server_user = await self._api.update_me(self.token, updates)
            merged = {**self.user.to_storage(), **(server_user or {})}
            updated = User.model_validate(merged)
        except (ApiError, ValidationError, TypeError) as exc:
            message = exc.message if isinstance(exc, ApiError) else "Error al actualizar perfil"
            self.error = message
            self.loading = False
            self._notifier.error("Error", message)
            raise

        self._persistence.save(USER_KEY, updated.to_storage())
        self.user = updated
        self.loading = False
        self._notifier.success("Perfil actualizado", "Tu información ha sido guardada correctamente")
        return updated
