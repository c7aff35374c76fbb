"""
Review Aggregator

One rating (1-5) and optional comment per (user, menu item). Submitting
again overwrites the earlier review. Averages are computed from the
reviews a caller has already loaded.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.core.exceptions import AuthenticationRequired, ResourceNotFound, ValidationFailed
from traktir.models import MenuItem, Review, User

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"


@dataclass
class ReviewView:
    """A review annotated with the reviewer's display name."""
    id: int
    menu_item_id: int
    user_id: str
    user_name: str
    rating: int
    comment: Optional[str]
    created_at: Optional[datetime] = None


@dataclass
class RatingSummary:
    """
    Average rating of an item.

    ``count`` distinguishes "no reviews yet" (count 0) from a genuine
    average of 0.
    """
    average: float
    count: int


def _round_half_up(value: float, places: str = "1") -> Decimal:
    return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def normalize_rating(rating: float) -> int:
    """
    Validate a submitted rating and round it to a whole star.

    Raises:
        ValidationFailed: non-numeric, non-finite or outside [1, 5]
    """
    if isinstance(rating, bool) or not isinstance(rating, (int, float, Decimal)):
        raise ValidationFailed("Rating must be a number.")
    if not math.isfinite(rating) or not 1 <= rating <= 5:
        raise ValidationFailed("Rating must be between 1 and 5.")
    return int(_round_half_up(rating))


def average_for(reviews: Sequence) -> RatingSummary:
    """Average of ``reviews[*].rating`` rounded half-up to one decimal."""
    if not reviews:
        return RatingSummary(average=0.0, count=0)

    total = sum(review.rating for review in reviews)
    average = _round_half_up(total / len(reviews), "0.1")
    return RatingSummary(average=float(average), count=len(reviews))


class ReviewAggregator:
    """Submit and read menu item reviews."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, user_id: str, menu_item_id: int) -> Optional[Review]:
        result = await self.db.execute(
            select(Review).where(
                Review.user_id == user_id,
                Review.menu_item_id == menu_item_id,
            )
        )
        return result.scalar_one_or_none()

    async def submit(
        self,
        user_id: Optional[str],
        menu_item_id: int,
        rating: float,
        comment: Optional[str] = None,
    ) -> bool:
        """
        Create or overwrite the user's review of a menu item.

        Raises:
            AuthenticationRequired: no user
            ValidationFailed: rating is not a number in [1, 5]
            ResourceNotFound: the menu item does not exist
        """
        if not user_id:
            raise AuthenticationRequired("User not authenticated. Please log in to submit a review.")

        stars = normalize_rating(rating)

        if await self.db.get(MenuItem, menu_item_id) is None:
            raise ResourceNotFound("Menu item not found.")

        existing = await self._find(user_id, menu_item_id)
        if existing:
            existing.rating = stars
            existing.comment = comment
            action = "updated"
        else:
            self.db.add(Review(
                menu_item_id=menu_item_id,
                user_id=user_id,
                rating=stars,
                comment=comment,
            ))
            action = "created"

        await self.db.commit()
        logger.info(f"Review {action}: user {user_id} rated item #{menu_item_id} {stars}/5")
        return True

    async def list_for_item(self, menu_item_id: int) -> list[ReviewView]:
        """All reviews of an item, newest first, with reviewer names."""
        result = await self.db.execute(
            select(Review, User.name)
            .outerjoin(User, User.id == Review.user_id)
            .where(Review.menu_item_id == menu_item_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )

        return [
            ReviewView(
                id=review.id,
                menu_item_id=review.menu_item_id,
                user_id=review.user_id,
                user_name=name or ANONYMOUS,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
            )
            for review, name in result.all()
        ]

    async def get_user_review(
        self,
        user_id: Optional[str],
        menu_item_id: int,
    ) -> Optional[Review]:
        """The caller's own review of an item, if any."""
        if not user_id:
            return None
        return await self._find(user_id, menu_item_id)

    average_for = staticmethod(average_for)
