"""Shared pytest fixtures for the client core tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from marketplace.core.exceptions import ApiError
from marketplace.core.kv_store import MemoryKeyValueStore
from marketplace.core.notifications import Notifier
from marketplace.core.persistence import JsonPersistence
from marketplace.stores.favorites import FavoritesStore
from marketplace.stores.orders import OrderStore


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    fail: bool = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis down")

    def ping(self) -> bool:
        self._check()
        return True

    def get(self, key: str):
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._check()
        self.data[key] = value
        return True

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if key in self.data:
                removed += 1
                self.data.pop(key)
        return removed


class BrokenKeyValueStore:
    """Every operation fails, like a full or corrupted device storage."""

    def get(self, key: str):
        raise OSError("read failed")

    def set(self, key: str, value: str) -> None:
        raise OSError("write failed")

    def remove(self, key: str) -> None:
        raise OSError("remove failed")

    def remove_many(self, keys: list[str]) -> None:
        raise OSError("remove failed")


class DummyApi:
    """In-memory stand-in for ApiClient; records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.responses: dict[str, Any] = {}
        self.errors: dict[str, ApiError] = {}

    async def _respond(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]
        response = self.responses.get(name)
        if callable(response):
            return response(*args)
        return response

    async def login(self, email, password):
        return await self._respond("login", email, password)

    async def google_login(self, id_token):
        return await self._respond("google_login", id_token)

    async def register(self, payload):
        return await self._respond("register", payload)

    async def update_me(self, token, updates):
        return await self._respond("update_me", token, updates)

    async def list_orders(self, token):
        return await self._respond("list_orders", token)

    async def get_order(self, token, order_id):
        return await self._respond("get_order", token, order_id)

    async def create_order(self, token, payload):
        return await self._respond("create_order", token, payload)

    async def get_order_invoice(self, token, order_id):
        return await self._respond("get_order_invoice", token, order_id)

    async def create_mercado_pago_preference(self, token, payload):
        return await self._respond("create_mercado_pago_preference", token, payload)

    async def close(self) -> None:
        return None

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def persistence(kv: MemoryKeyValueStore) -> JsonPersistence:
    return JsonPersistence(kv)


@pytest.fixture()
def store(persistence: JsonPersistence) -> OrderStore:
    return OrderStore(persistence)


@pytest.fixture()
def favorites(persistence: JsonPersistence) -> FavoritesStore:
    return FavoritesStore(persistence)


@pytest.fixture()
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture()
def api() -> DummyApi:
    return DummyApi()


@pytest.fixture()
def booking_data() -> dict[str, Any]:
    return {
        "date": "2024-01-01",
        "time": "10:00",
        "address": "Av. X 123",
        "contactName": "Ana",
        "contactPhone": "999",
        "contactEmail": "a@a.com",
        "quantity": 1,
        "totalPrice": 150,
        "paymentMethod": "yape",
    }


@pytest.fixture()
def broken_kv() -> BrokenKeyValueStore:
    return BrokenKeyValueStore()


@pytest.fixture()
def fake_redis(monkeypatch) -> FakeRedisClient:
    import marketplace.core.kv_store as kv_store_module

    client = FakeRedisClient()
    monkeypatch.setattr(kv_store_module.redis, "from_url", lambda *args, **kwargs: client)
    return client
