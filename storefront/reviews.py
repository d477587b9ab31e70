"""
Review aggregation: list statistics, per-product stats and admin analytics.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Iterable, Optional
from urllib.parse import quote

from storefront.db import DbClient, ReviewRecord

RECENT_WINDOW_SECONDS = 7 * 24 * 60 * 60
TOP_PRODUCTS_LIMIT = 10
MONTHS_IN_ANALYTICS = 12


def _empty_distribution() -> dict[int, int]:
    return {5: 0, 4: 0, 3: 0, 2: 0, 1: 0}


def _round_half_up(value: float, digits: int) -> float:
    return float(round(value + 1e-9, digits))


def to_iso(timestamp: Optional[float]) -> Optional[str]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def review_date(review: ReviewRecord) -> str:
    return datetime.fromtimestamp(review.created_at, tz=timezone.utc).date().isoformat()


def default_avatar(user_name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(user_name or '')}&background=random"


def review_to_response(review: ReviewRecord) -> dict:
    return {
        "id": review.id,
        "productId": review.product_id,
        "userId": review.user_id,
        "userName": review.user_name,
        "userAvatar": review.user_avatar,
        "rating": review.rating,
        "comment": review.comment,
        "date": review_date(review),
        "verified": review.verified,
        "createdAt": to_iso(review.created_at),
        "updatedAt": to_iso(review.updated_at),
    }


def _distribution(reviews: Iterable[ReviewRecord]) -> dict[int, int]:
    distribution = _empty_distribution()
    for review in reviews:
        if review.rating in distribution:
            distribution[review.rating] += 1
    return distribution


def _recent_count(reviews: Iterable[ReviewRecord], now: float) -> int:
    cutoff = now - RECENT_WINDOW_SECONDS
    return sum(1 for review in reviews if review.created_at > cutoff)


def calculate_review_stats(
    reviews: list[ReviewRecord], now: Optional[float] = None
) -> dict:
    """Summary attached to review listings; average kept to two decimals."""
    now = time.time() if now is None else now
    if not reviews:
        return {
            "totalReviews": 0,
            "averageRating": 0,
            "ratingDistribution": _empty_distribution(),
            "verifiedReviews": 0,
            "recentReviews": 0,
        }
    total = sum(review.rating for review in reviews)
    return {
        "totalReviews": len(reviews),
        "averageRating": _round_half_up(total / len(reviews), 2),
        "ratingDistribution": _distribution(reviews),
        "verifiedReviews": sum(1 for review in reviews if review.verified),
        "recentReviews": _recent_count(reviews, now),
    }


def product_review_stats(
    product_id: int,
    product_name: str,
    reviews: list[ReviewRecord],
    top_limit: int = 5,
    now: Optional[float] = None,
) -> dict:
    now = time.time() if now is None else now
    stats = {
        "productId": product_id,
        "productName": product_name,
        "totalReviews": len(reviews),
        "averageRating": 0,
        "ratingDistribution": _empty_distribution(),
        "verifiedReviews": 0,
        "recentReviews": 0,
        "topReviews": [],
    }
    if not reviews:
        return stats

    total = sum(review.rating for review in reviews)
    # Verified first, then highest rating, then newest.
    top = sorted(
        reviews,
        key=lambda r: (not r.verified, -r.rating, -r.created_at),
    )[:top_limit]
    stats.update(
        averageRating=_round_half_up(total / len(reviews), 1),
        ratingDistribution=_distribution(reviews),
        verifiedReviews=sum(1 for review in reviews if review.verified),
        recentReviews=_recent_count(reviews, now),
        topReviews=[
            {
                "id": review.id,
                "userName": review.user_name,
                "userAvatar": review.user_avatar,
                "rating": review.rating,
                "comment": review.comment,
                "date": review_date(review),
                "verified": review.verified,
            }
            for review in top
        ],
    )
    return stats


def _month_bounds(now: float, count: int) -> list[datetime]:
    """Start of each of the last ``count`` months, plus the start of next month."""
    current = datetime.fromtimestamp(now, tz=timezone.utc)
    index = current.year * 12 + (current.month - 1)
    bounds = []
    for offset in range(count - 1, -2, -1):
        value = index - offset
        bounds.append(datetime(value // 12, value % 12 + 1, 1, tzinfo=timezone.utc))
    return bounds


def review_analytics(
    reviews: list[ReviewRecord],
    product_names: dict[int, str],
    now: Optional[float] = None,
) -> dict:
    now = time.time() if now is None else now
    if not reviews:
        return {
            "totalReviews": 0,
            "averageRating": 0,
            "verifiedReviews": 0,
            "pendingVerification": 0,
            "recentReviews": 0,
            "topRatedProducts": [],
            "ratingDistribution": _empty_distribution(),
            "monthlyStats": [],
        }

    total_reviews = len(reviews)
    verified = sum(1 for review in reviews if review.verified)

    per_product: "OrderedDict[int, list[int]]" = OrderedDict()
    for review in reviews:
        per_product.setdefault(review.product_id, []).append(review.rating)
    top_rated = sorted(
        (
            {
                "productId": product_id,
                "productName": product_names.get(product_id, "Unknown Product"),
                "averageRating": _round_half_up(sum(ratings) / len(ratings), 1),
                "reviewCount": len(ratings),
            }
            for product_id, ratings in per_product.items()
        ),
        key=lambda item: item["averageRating"],
        reverse=True,
    )[:TOP_PRODUCTS_LIMIT]

    bounds = _month_bounds(now, MONTHS_IN_ANALYTICS)
    monthly = []
    for start, end in zip(bounds, bounds[1:]):
        in_month = [
            review
            for review in reviews
            if start.timestamp() <= review.created_at < end.timestamp()
        ]
        average = (
            _round_half_up(sum(r.rating for r in in_month) / len(in_month), 1)
            if in_month
            else 0
        )
        monthly.append(
            {
                "month": start.strftime("%b %Y"),
                "reviews": len(in_month),
                "averageRating": average,
            }
        )

    return {
        "totalReviews": total_reviews,
        "averageRating": _round_half_up(
            sum(review.rating for review in reviews) / total_reviews, 1
        ),
        "verifiedReviews": verified,
        "pendingVerification": total_reviews - verified,
        "recentReviews": _recent_count(reviews, now),
        "topRatedProducts": top_rated,
        "ratingDistribution": _distribution(reviews),
        "monthlyStats": monthly,
    }


def refresh_product_rating(db: DbClient, product_id: int) -> None:
    """Recompute the stored product rating from its reviews."""
    reviews = db.list_reviews(product_id=product_id)
    if not reviews:
        db.update_product_rating(product_id, 0, 0)
        return
    average = _round_half_up(sum(r.rating for r in reviews) / len(reviews), 2)
    db.update_product_rating(product_id, average, len(reviews))
