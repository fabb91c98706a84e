"""Match document storage with live change fan-out.

The scoring engine never touches storage; routers load a document, apply a
pure transition and write the result back through ``MatchStore.update``.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import suppress
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Optional

import redis.asyncio as redis

from .config import MATCH_LOCK_TIMEOUT, MATCH_STORE, REDIS_URL
from .exceptions import MatchNotFound

logger = logging.getLogger(__name__)

OnChange = Callable[[Dict], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


class MatchStore(ABC):
    """
    The MatchStore is the sole owner of persisted match documents.

    Invariants:
    - ``put`` replaces the whole document (last writer wins)
    - Every ``put`` is delivered to the current subscribers of that match
    - ``update`` serialises transitions on the same match
    """

    @abstractmethod
    async def get(self, match_id: str) -> Dict:
        """Return a copy of the match document.

        Raises:
            MatchNotFound: If the match does not exist.
        """

    @abstractmethod
    async def put(self, match_id: str, state: Dict) -> None:
        """Store ``state`` and notify subscribers."""

    @abstractmethod
    async def delete(self, match_id: str) -> None:
        """Remove a match.

        Raises:
            MatchNotFound: If the match does not exist.
        """

    @abstractmethod
    async def list(self) -> Dict[str, Dict]:
        """Return every stored match keyed by id."""

    @abstractmethod
    async def subscribe(self, match_id: str, on_change: OnChange) -> Unsubscribe:
        """Call ``on_change`` with the new document after every ``put``.

        Returns a coroutine function that cancels the subscription.
        """

    @abstractmethod
    def lock(self, match_id: str) -> AsyncContextManager[Any]:
        """Return a context manager guarding writes to one match."""

    async def update(
        self, match_id: str, transition: Callable[..., Dict], *args: Any, **kwargs: Any
    ) -> Dict:
        """Apply ``transition(state, *args, **kwargs)`` and store its result."""

        async with self.lock(match_id):
            state = await self.get(match_id)
            new_state = transition(state, *args, **kwargs)
            await self.put(match_id, new_state)
        return new_state


class MemoryMatchStore(MatchStore):
    """In-process store for a single worker and for tests."""

    def __init__(self) -> None:
        self._docs: Dict[str, Dict] = {}
        self._subscribers: Dict[str, list[OnChange]] = defaultdict(list)
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get(self, match_id: str) -> Dict:
        doc = self._docs.get(match_id)
        if doc is None:
            raise MatchNotFound(match_id)
        return copy.deepcopy(doc)

    async def put(self, match_id: str, state: Dict) -> None:
        self._docs[match_id] = copy.deepcopy(state)
        for on_change in list(self._subscribers.get(match_id, ())):
            try:
                await on_change(copy.deepcopy(state))
            except Exception:
                logger.warning("Subscriber for match %s failed", match_id, exc_info=True)

    async def delete(self, match_id: str) -> None:
        # The lock outlives the document so queued updates stay serialised
        async with self.lock(match_id):
            if self._docs.pop(match_id, None) is None:
                raise MatchNotFound(match_id)

    async def list(self) -> Dict[str, Dict]:
        return {mid: copy.deepcopy(doc) for mid, doc in self._docs.items()}

    async def subscribe(self, match_id: str, on_change: OnChange) -> Unsubscribe:
        self._subscribers[match_id].append(on_change)

        async def unsubscribe() -> None:
            listeners = self._subscribers.get(match_id, [])
            with suppress(ValueError):
                listeners.remove(on_change)
            if not listeners:
                self._subscribers.pop(match_id, None)

        return unsubscribe

    def lock(self, match_id: str) -> asyncio.Lock:
        return self._locks.setdefault(match_id, asyncio.Lock())


class RedisMatchStore(MatchStore):
    """Documents as JSON strings, changes fanned out over pub/sub."""

    def __init__(self, client: redis.Redis, *, prefix: str = "match") -> None:
        self._client = client
        self._prefix = prefix

    def _doc_key(self, match_id: str) -> str:
        return f"{self._prefix}:{match_id}"

    def _channel(self, match_id: str) -> str:
        return f"{self._prefix}:{match_id}:updates"

    @property
    def _index_key(self) -> str:
        return f"{self._prefix}:ids"

    async def get(self, match_id: str) -> Dict:
        raw = await self._client.get(self._doc_key(match_id))
        if raw is None:
            raise MatchNotFound(match_id)
        return json.loads(raw)

    async def put(self, match_id: str, state: Dict) -> None:
        payload = json.dumps(state)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(self._doc_key(match_id), payload)
            pipe.sadd(self._index_key, match_id)
            await pipe.execute()
        await self._client.publish(self._channel(match_id), payload)

    async def delete(self, match_id: str) -> None:
        removed = await self._client.delete(self._doc_key(match_id))
        await self._client.srem(self._index_key, match_id)
        if not removed:
            raise MatchNotFound(match_id)

    async def list(self) -> Dict[str, Dict]:
        ids = sorted(await self._client.smembers(self._index_key))
        if not ids:
            return {}
        raw_docs = await self._client.mget([self._doc_key(mid) for mid in ids])
        return {
            mid: json.loads(raw)
            for mid, raw in zip(ids, raw_docs)
            if raw is not None
        }

    async def subscribe(self, match_id: str, on_change: OnChange) -> Unsubscribe:
        channel = self._channel(match_id)
        pubsub = self._client.pubsub()
        await pubsub.subscribe(channel)

        async def listener() -> None:
            try:
                async for msg in pubsub.listen():
                    if msg.get("type") != "message":
                        continue
                    try:
                        await on_change(json.loads(msg["data"]))
                    except Exception:
                        logger.warning(
                            "Subscriber for match %s failed", match_id, exc_info=True
                        )
            except redis.ConnectionError:
                logger.warning("Lost pub/sub connection for match %s", match_id)

        task = asyncio.create_task(listener())

        async def unsubscribe() -> None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

        return unsubscribe

    def lock(self, match_id: str):
        return self._client.lock(
            f"{self._prefix}:{match_id}:lock", timeout=MATCH_LOCK_TIMEOUT
        )


_store: Optional[MatchStore] = None


def build_store() -> MatchStore:
    if MATCH_STORE == "redis":
        logger.info("Using redis match store at %s", REDIS_URL)
        return RedisMatchStore(redis.from_url(REDIS_URL, decode_responses=True))
    if MATCH_STORE != "memory":
        raise ValueError(f"MATCH_STORE must be 'memory' or 'redis' (got {MATCH_STORE!r})")
    return MemoryMatchStore()


def get_store() -> MatchStore:
    """Return the lazily created process-wide store (FastAPI dependency)."""

    global _store
    if _store is None:
        _store = build_store()
    return _store
