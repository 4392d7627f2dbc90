"""Document store abstraction consumed by the catalog, favorites and review services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

Document = dict[str, Any]
Filter = tuple[str, Any]


@dataclass(frozen=True)
class OrderBy:
    """Sort directive for a query."""

    field: str
    descending: bool = False


class DocumentStore(ABC):
    """Asynchronous key/value-with-query document store.

    Every method resolves exactly once, either with its result or by raising
    one of the :class:`~src.services.errors.StoreError` subclasses.
    """

    @abstractmethod
    async def get_by_id(self, collection: str, doc_id: str) -> Document:
        """Return the document or raise NotFoundError."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[tuple[str, Document]]:
        """Return ``(id, document)`` pairs matching every equality filter."""

    @abstractmethod
    async def insert(self, collection: str, fields: Document) -> str:
        """Insert under a generated id and return that id."""

    @abstractmethod
    async def insert_at(self, collection: str, doc_id: str, fields: Document) -> None:
        """Insert or overwrite the document stored under ``doc_id``."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge ``fields`` into an existing document or raise NotFoundError."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete the document. Deleting a missing document is not an error."""
