"""Review creation and its fan-out to orders and product ratings."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from src.config import settings
from src.models.product import ProductRatingSummary
from src.models.review import Review, ReviewRequest
from src.services.errors import OrderAlreadyReviewedError, PreconditionFailedError
from src.services.reviews.stats import average_rating
from src.services.storage.document_store import Document, DocumentStore, OrderBy

logger = logging.getLogger(__name__)

_NEWEST_FIRST = OrderBy("createdAt", descending=True)


def sort_newest_first(reviews: list[Review]) -> list[Review]:
    """Order by ``created_at`` descending; reviews without it go last."""
    dated = sorted(
        (review for review in reviews if review.created_at is not None),
        key=lambda review: review.created_at,
        reverse=True,
    )
    return dated + [review for review in reviews if review.created_at is None]


class ReviewCoordinator:
    """Creates reviews and propagates them to the order and product records.

    There is no transaction across the three records. The review write is
    the primary operation; the order flag and the product aggregate are
    cascades run as background tasks whose failures are logged, never
    reported to the caller. Both cascades can be re-run at any time.
    Reviews are permanent: there is no update or delete.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        reviews_collection: str | None = None,
        orders_collection: str | None = None,
        products_collection: str | None = None,
    ) -> None:
        self.store = store
        self.reviews_collection = reviews_collection or settings.REVIEWS_COLLECTION
        self.orders_collection = orders_collection or settings.ORDERS_COLLECTION
        self.products_collection = products_collection or settings.PRODUCTS_COLLECTION
        self._cascades: set[asyncio.Task[Any]] = set()
        self._rating_locks: dict[str, asyncio.Lock] = {}
        self._rating_lock_waiters: dict[str, int] = {}

    async def submit_review(
        self, request: ReviewRequest, user_id: str, user_name: str | None = None
    ) -> Review:
        """Create a review for an order that has not been reviewed yet."""
        if await self.has_order_been_reviewed(request.order_id):
            logger.warning("Order already reviewed: %s", request.order_id)
            raise OrderAlreadyReviewedError(request.order_id)

        review = Review(
            user_id=user_id,
            **request.model_dump(exclude={"user_name"}),
            user_name=user_name or request.user_name,
        )
        return await self.create_review(review)

    async def create_review(self, review: Review) -> Review:
        """Persist ``review`` and schedule its cascades.

        Returns as soon as the review itself is stored. A failed write raises
        and no cascade runs.
        """
        review = review.model_copy()
        now = datetime.now(UTC)
        if not review.review_id:
            review.review_id = uuid.uuid4().hex
        if review.created_at is None:
            review.created_at = now
        if review.updated_at is None:
            review.updated_at = now
        review.is_verified_purchase = True

        await self.store.insert_at(
            self.reviews_collection, review.review_id, review.to_document()
        )
        logger.info(
            "Review created",
            extra={
                "review_id": review.review_id,
                "order_id": review.order_id,
                "product_id": review.product_id,
            },
        )

        self._spawn(
            self.update_order_review_flag(review.order_id, review.review_id),
            f"order-flag:{review.order_id}",
        )
        self._spawn(
            self.recompute_product_rating(review.product_id),
            f"product-rating:{review.product_id}",
        )
        return review

    async def update_order_review_flag(self, order_id: str, review_id: str) -> None:
        if not order_id:
            logger.warning("Cannot flag order for review %s: no order id", review_id)
            return

        await self.store.update(
            self.orders_collection,
            order_id,
            {
                "hasReview": True,
                "reviewId": review_id,
                "updatedAt": datetime.now(UTC).isoformat(),
            },
        )
        logger.info("Flagged order %s as reviewed by %s", order_id, review_id)

    async def recompute_product_rating(
        self, product_id: str
    ) -> ProductRatingSummary | None:
        """Rewrite the product's aggregate rating from all of its reviews.

        Recomputes of one product run one at a time, each reading the reviews
        only after the previous one has written, so a slower earlier
        recompute cannot overwrite a later aggregate.
        """
        if not product_id:
            logger.warning("Cannot update product rating: no product id")
            return None

        async with self._product_lock(product_id):
            documents = await self.store.query(
                self.reviews_collection, [("productId", product_id)]
            )
            reviews = self._to_reviews(documents)
            if not reviews:
                # Possible right after a write on a lagging replica; the next
                # review for this product recomputes from scratch.
                logger.warning(
                    "No reviews found for product %s, rating not updated", product_id
                )
                return None

            summary = ProductRatingSummary(
                product_id=product_id,
                average_rating=average_rating(reviews),
                total_reviews=len(reviews),
            )
            await self.store.update(
                self.products_collection, product_id, summary.to_document()
            )
        logger.info(
            "Updated product stats: product_id=%s avg_rating=%.1f total_reviews=%d",
            product_id,
            summary.average_rating,
            summary.total_reviews,
        )
        return summary

    @asynccontextmanager
    async def _product_lock(self, product_id: str) -> AsyncIterator[None]:
        lock = self._rating_locks.setdefault(product_id, asyncio.Lock())
        self._rating_lock_waiters[product_id] = (
            self._rating_lock_waiters.get(product_id, 0) + 1
        )
        try:
            async with lock:
                yield
        finally:
            self._rating_lock_waiters[product_id] -= 1
            if not self._rating_lock_waiters[product_id]:
                del self._rating_lock_waiters[product_id]
                del self._rating_locks[product_id]

    async def get_reviews_by_product(self, product_id: str) -> list[Review]:
        return await self._list_newest_first("productId", product_id)

    async def get_user_reviews(self, user_id: str) -> list[Review]:
        return await self._list_newest_first("userId", user_id)

    async def has_order_been_reviewed(self, order_id: str) -> bool:
        matches = await self.store.query(
            self.reviews_collection, [("orderId", order_id)], limit=1
        )
        return bool(matches)

    async def can_review(self, order_id: str) -> bool:
        return not await self.has_order_been_reviewed(order_id)

    async def drain(self) -> None:
        """Wait for every scheduled cascade to finish."""
        while self._cascades:
            await asyncio.gather(*list(self._cascades), return_exceptions=True)

    @property
    def pending_cascades(self) -> int:
        return len(self._cascades)

    async def _list_newest_first(self, field: str, value: str) -> list[Review]:
        filters = [(field, value)]
        try:
            documents = await self.store.query(
                self.reviews_collection, filters, order_by=_NEWEST_FIRST
            )
        except PreconditionFailedError as exc:
            logger.warning(
                "Ordered review query by %s rejected, sorting in memory: %s", field, exc
            )
            documents = await self.store.query(self.reviews_collection, filters)
            reviews = sort_newest_first(self._to_reviews(documents))
        else:
            reviews = self._to_reviews(documents)

        logger.debug("Retrieved %d reviews for %s=%s", len(reviews), field, value)
        return reviews

    @staticmethod
    def _to_reviews(documents: list[tuple[str, Document]]) -> list[Review]:
        reviews: list[Review] = []
        for doc_id, data in documents:
            try:
                reviews.append(Review.from_document(doc_id, data))
            except ValidationError as exc:
                logger.error("Error converting review document %s: %s", doc_id, exc)
        return reviews

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._cascades.add(task)
        task.add_done_callback(self._on_cascade_done)

    def _on_cascade_done(self, task: asyncio.Task[Any]) -> None:
        self._cascades.discard(task)
        if task.cancelled():
            logger.warning("Cascade %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Cascade %s failed: %s", task.get_name(), exc, exc_info=exc
            )
