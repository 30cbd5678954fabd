"""JSON persistence on top of a key-value store.

Every store goes through :class:`JsonPersistence` so that serialization and
failure handling follow one rule: the caller picks the policy.

- ``PersistencePolicy.DEFAULT``: log the failure and return the default
  (reads) or ``False`` (writes).
- ``PersistencePolicy.PROPAGATE``: raise :class:`PersistenceException`.

Corrupt or unparseable values are treated as absent under both policies.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

from marketplace.core.exceptions import PersistenceException
from marketplace.core.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class PersistencePolicy(str, Enum):
    DEFAULT = "default"
    PROPAGATE = "propagate"


class JsonPersistence:
    def __init__(
        self,
        store: KeyValueStore,
        policy: PersistencePolicy = PersistencePolicy.DEFAULT,
    ):
        self._store = store
        self.policy = policy

    def _fail(self, action: str, key: str, exc: Exception) -> None:
        if self.policy is PersistencePolicy.PROPAGATE:
            raise PersistenceException(f"Failed to {action} '{key}': {exc}") from exc
        logger.warning("Failed to %s '%s': %s", action, key, exc)

    def read_raw(self, key: str) -> str | None:
        try:
            return self._store.get(key)
        except Exception as exc:
            self._fail("read", key, exc)
            return None

    def load(self, key: str, default: Any = None) -> Any:
        raw = self.read_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding corrupt JSON stored under '%s'", key)
            return default

    def save(self, key: str, value: Any) -> bool:
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            self._fail("serialize", key, exc)
            return False
        return self.write_raw(key, serialized)

    def write_raw(self, key: str, value: str) -> bool:
        try:
            self._store.set(key, value)
            return True
        except Exception as exc:
            self._fail("write", key, exc)
            return False

    def remove(self, *keys: str) -> bool:
        if not keys:
            return True
        try:
            if len(keys) == 1:
                self._store.remove(keys[0])
            else:
                self._store.remove_many(list(keys))
            return True
        except Exception as exc:
            self._fail("remove", ", ".join(keys), exc)
            return False
