"""Error taxonomy shared by the store, catalog, favorites and review services."""

from __future__ import annotations


class ConsistencyError(Exception):
    """Base class for every error raised by this service."""


class StoreError(ConsistencyError):
    """A document store operation failed."""


class TransportError(StoreError):
    """The store could not be reached. Retryable by the caller."""


class OfflineError(TransportError):
    """The connection to the store could not be established."""


class UnreachableError(TransportError):
    """The store did not answer in time."""


class NotFoundError(StoreError):
    """A referenced document does not exist."""


class PermissionDeniedError(StoreError):
    """The store refused the operation for the current credentials."""


class PreconditionFailedError(StoreError):
    """The store cannot serve the query as issued, e.g. a missing index."""


class ConflictError(ConsistencyError):
    """The operation conflicts with existing data. Do not retry as-is."""


class AlreadyFavoritedError(ConflictError):
    def __init__(self, user_id: str, product_id: str) -> None:
        super().__init__(f"Product {product_id} is already a favorite of {user_id}")
        self.user_id = user_id
        self.product_id = product_id


class OrderAlreadyReviewedError(ConflictError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} has already been reviewed")
        self.order_id = order_id


class EmptyCatalogError(ConsistencyError):
    """The product collection returned no documents."""


class NotSignedInError(ConsistencyError):
    """The operation needs a signed-in user."""
