"""Pure helpers over review lists used for rating breakdowns and filtering."""

from __future__ import annotations

from src.models.review import MAX_RATING, MIN_RATING, RatingSummary, Review


def average_rating(reviews: list[Review]) -> float:
    if not reviews:
        return 0.0
    return sum(review.rating for review in reviews) / len(reviews)


def _star(review: Review) -> int:
    # Half-star ratings round up, e.g. 4.5 counts as 5.
    return int(review.rating + 0.5)


def count_by_rating(reviews: list[Review], rating: int) -> int:
    return sum(1 for review in reviews if _star(review) == rating)


def rating_percentage(reviews: list[Review], rating: int) -> float:
    if not reviews:
        return 0.0
    return count_by_rating(reviews, rating) * 100.0 / len(reviews)


def filter_by_rating(reviews: list[Review], rating: int) -> list[Review]:
    """Reviews whose rounded rating equals ``rating``; 0 keeps everything."""
    if rating == 0:
        return list(reviews)
    return [review for review in reviews if _star(review) == rating]


def filter_verified(reviews: list[Review]) -> list[Review]:
    return [review for review in reviews if review.is_verified_purchase]


def filter_with_images(reviews: list[Review]) -> list[Review]:
    return [review for review in reviews if review.has_images]


def summarize(reviews: list[Review]) -> RatingSummary:
    return RatingSummary(
        average_rating=average_rating(reviews),
        total_reviews=len(reviews),
        distribution={
            star: count_by_rating(reviews, star)
            for star in range(MIN_RATING, MAX_RATING + 1)
        },
    )
