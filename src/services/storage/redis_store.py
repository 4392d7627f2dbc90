"""Redis-backed implementation of the document store."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis  # type: ignore[import]
from redis import exceptions as redis_exceptions  # type: ignore[import]

from src.config import settings
from src.services.errors import (
    NotFoundError,
    OfflineError,
    PermissionDeniedError,
    PreconditionFailedError,
    StoreError,
    UnreachableError,
)
from src.services.storage.document_store import Document, DocumentStore, Filter, OrderBy

logger = logging.getLogger(__name__)

IndexSpec = tuple[str, tuple[str, ...], str]


@contextmanager
def _translate_errors(operation: str, collection: str) -> Iterator[None]:
    """Re-raise redis client errors as classified store errors."""
    try:
        yield
    except redis_exceptions.AuthenticationError as exc:
        raise PermissionDeniedError(f"{operation} on {collection}: {exc}") from exc
    except redis_exceptions.TimeoutError as exc:
        raise UnreachableError(f"{operation} on {collection}: {exc}") from exc
    except redis_exceptions.ConnectionError as exc:
        raise OfflineError(f"{operation} on {collection}: {exc}") from exc
    except redis_exceptions.ResponseError as exc:
        if "NOPERM" in str(exc):
            raise PermissionDeniedError(f"{operation} on {collection}: {exc}") from exc
        raise StoreError(f"{operation} on {collection}: {exc}") from exc
    except redis_exceptions.RedisError as exc:
        raise StoreError(f"{operation} on {collection}: {exc}") from exc


def _text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _sort_value(value: Any) -> tuple[int, Any]:
    # Timestamps are persisted as ISO strings with varying precision, so compare
    # them as instants rather than as text. Naive timestamps are UTC.
    if isinstance(value, bool | int | float):
        return (0, float(value))
    if isinstance(value, str):
        try:
            instant = datetime.fromisoformat(value)
        except ValueError:
            return (1, value)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        return (0, instant.timestamp())
    return (2, str(value))


def sort_documents(
    documents: list[tuple[str, Document]], order_by: OrderBy
) -> list[tuple[str, Document]]:
    """Sort by ``order_by.field``; documents missing the field always go last."""
    present = [doc for doc in documents if doc[1].get(order_by.field) is not None]
    missing = [doc for doc in documents if doc[1].get(order_by.field) is None]
    present.sort(
        key=lambda doc: _sort_value(doc[1][order_by.field]),
        reverse=order_by.descending,
    )
    return present + missing


class RedisDocumentStore(DocumentStore):
    """Stores each document as JSON under ``<prefix><collection>:<id>``.

    A Redis set per collection tracks its ids so queries can scan the
    collection. When ``indexes`` is given, ordered queries must match one of
    the declared ``(collection, filter fields, order field)`` triples.
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "",
        indexes: set[IndexSpec] | None = None,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self.indexes = indexes

    def _key(self, collection: str, doc_id: str) -> str:
        return f"{self.prefix}{collection}:{doc_id}"

    def _ids_key(self, collection: str) -> str:
        return f"{self.prefix}ids:{collection}"

    async def get_by_id(self, collection: str, doc_id: str) -> Document:
        with _translate_errors("get", collection):
            raw = await self.client.get(self._key(collection, doc_id))
        if raw is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist")
        return json.loads(raw)

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[tuple[str, Document]]:
        if order_by is not None:
            self._check_index(collection, filters, order_by)

        with _translate_errors("query", collection):
            members = await self.client.smembers(self._ids_key(collection))
            ids = sorted(_text(member) for member in members)
            if not ids:
                return []
            raws = await self.client.mget([self._key(collection, i) for i in ids])

        matches: list[tuple[str, Document]] = []
        for doc_id, raw in zip(ids, raws):
            if raw is None:
                # Id set and document drifted apart; the document is gone.
                continue
            document = json.loads(raw)
            if all(document.get(field) == value for field, value in filters):
                matches.append((doc_id, document))

        if order_by is not None:
            matches = sort_documents(matches, order_by)
        if limit is not None:
            matches = matches[:limit]
        return matches

    async def insert(self, collection: str, fields: Document) -> str:
        doc_id = uuid.uuid4().hex
        await self.insert_at(collection, doc_id, fields)
        return doc_id

    async def insert_at(self, collection: str, doc_id: str, fields: Document) -> None:
        with _translate_errors("insert", collection):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._key(collection, doc_id), json.dumps(fields))
                pipe.sadd(self._ids_key(collection), doc_id)
                await pipe.execute()
        logger.debug("Stored %s/%s", collection, doc_id)

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        document = await self.get_by_id(collection, doc_id)
        document.update(fields)
        with _translate_errors("update", collection):
            await self.client.set(self._key(collection, doc_id), json.dumps(document))
        logger.debug("Updated %s/%s fields=%s", collection, doc_id, sorted(fields))

    async def delete(self, collection: str, doc_id: str) -> None:
        with _translate_errors("delete", collection):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key(collection, doc_id))
                pipe.srem(self._ids_key(collection), doc_id)
                await pipe.execute()
        logger.debug("Deleted %s/%s", collection, doc_id)

    def _check_index(
        self, collection: str, filters: Sequence[Filter], order_by: OrderBy
    ) -> None:
        if self.indexes is None:
            return
        spec = (collection, tuple(sorted(field for field, _ in filters)), order_by.field)
        if spec not in self.indexes:
            raise PreconditionFailedError(
                f"FAILED_PRECONDITION: query on {collection} filtered by "
                f"{list(spec[1])} ordered by {order_by.field} requires an index"
            )


_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return a singleton Redis client for the current process."""

    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )
    return _redis_client


def create_document_store(client: redis.Redis | None = None) -> RedisDocumentStore:
    """Factory function to create the Redis document store."""
    return RedisDocumentStore(
        client or get_redis_client(),
        prefix=settings.STORE_KEY_PREFIX,
        indexes=settings.ordered_indexes,
    )
