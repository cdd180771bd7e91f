"""
Durable client state (session token, user, repository selection).

The keys mirror what the DevInsights front end keeps between page loads:

- auth_token               - bearer token issued by the analytics API
- auth_user                - JSON encoded user profile
- selected_repo            - id of the selected repository
- selected_repo_full_name  - "owner/repo" of the selected repository

Two backends are provided: Redis (durable, default) and an in-process dict
used for local development and tests.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis.asyncio as aioredis

from devinsights.dtos.auth import SessionUser
from devinsights.dtos.repository import RepositorySelection

logger = logging.getLogger(__name__)

KEY_AUTH_TOKEN = "auth_token"
KEY_AUTH_USER = "auth_user"
KEY_SELECTED_REPO = "selected_repo"
KEY_SELECTED_REPO_FULL_NAME = "selected_repo_full_name"


class KeyValueStore(ABC):
    """Minimal async string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def delete(self, *keys: str) -> None: ...

    async def close(self) -> None:
        return None


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; every key is prefixed with the configured namespace."""

    def __init__(self, client: aioredis.Redis, namespace: str):
        self._redis = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        value = await self._redis.get(self._key(key))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(self._key(key), value)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self._redis.delete(*(self._key(k) for k in keys))

    async def close(self) -> None:
        await self._redis.aclose()


class ClientStateStore:
    """Typed accessors over a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def get_token(self) -> Optional[str]:
        return await self._store.get(KEY_AUTH_TOKEN)

    async def set_token(self, token: str) -> None:
        await self._store.set(KEY_AUTH_TOKEN, token)

    async def clear_token(self) -> None:
        await self._store.delete(KEY_AUTH_TOKEN)

    async def get_user(self) -> Optional[SessionUser]:
        raw = await self._store.get(KEY_AUTH_USER)
        if not raw:
            return None
        try:
            return SessionUser.model_validate(json.loads(raw))
        except ValueError:
            logger.warning("Discarding unreadable stored user profile")
            await self._store.delete(KEY_AUTH_USER)
            return None

    async def set_user(self, user: SessionUser) -> None:
        await self._store.set(KEY_AUTH_USER, user.model_dump_json())

    async def clear_session(self) -> None:
        await self._store.delete(KEY_AUTH_TOKEN, KEY_AUTH_USER)

    async def get_selection(self) -> Optional[RepositorySelection]:
        repo_id = await self._store.get(KEY_SELECTED_REPO)
        full_name = await self._store.get(KEY_SELECTED_REPO_FULL_NAME)
        if not repo_id or not full_name:
            return None
        return RepositorySelection(repo_id=repo_id, repo_full_name=full_name)

    async def set_selection(self, selection: RepositorySelection) -> None:
        await self._store.set(KEY_SELECTED_REPO, selection.repo_id)
        await self._store.set(KEY_SELECTED_REPO_FULL_NAME, selection.repo_full_name)

    async def clear_selection(self) -> None:
        await self._store.delete(KEY_SELECTED_REPO, KEY_SELECTED_REPO_FULL_NAME)

    async def close(self) -> None:
        await self._store.close()
