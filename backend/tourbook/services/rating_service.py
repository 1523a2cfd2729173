import logging
from typing import List, Optional

from tourbook.core.errors import Conflict, InvalidArgument, NotFound
from tourbook.models.domain import Review, round_half_up
from tourbook.storage.repository import Repository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def aggregate_rating(ratings: List[int]) -> int:
    """Mean review rating scaled by ten, or 0 for an unreviewed tour."""
    if not ratings:
        return 0
    return round_half_up(sum(ratings) * 10, len(ratings))


class RatingService:
    """
    Keeps ``Tour.rating`` in step with the tour's reviews.

    Comments reach this service already validated: the API checks the minimum
    length against the app's settings and it is not checked again here.
    """

    def __init__(self, repository: Repository, one_review_per_user: bool = False):
        self.repository = repository
        self.one_review_per_user = one_review_per_user

    def submit_review(
        self, tour_id: int, user_id: str, rating: int, comment: str
    ) -> Review:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidArgument("rating must be an integer", field="rating", value=rating)
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidArgument(
                f"rating must be between {MIN_RATING} and {MAX_RATING}",
                field="rating",
                value=rating,
            )

        with self.repository.transaction():
            if self.repository.get_tour(tour_id, for_update=True) is None:
                raise NotFound(f"Tour {tour_id} not found", field="tour_id", value=tour_id)
            if self.one_review_per_user and any(
                r.user_id == user_id for r in self.repository.get_reviews_by_tour(tour_id)
            ):
                raise Conflict(
                    f"User {user_id} has already reviewed tour {tour_id}",
                    field="user_id",
                    value=user_id,
                )
            review = self.repository.create_review(
                {
                    "tour_id": tour_id,
                    "user_id": user_id,
                    "rating": rating,
                    "comment": comment,
                }
            )
            logger.info("User %s rated tour %s with %d", user_id, tour_id, rating)
            self.recompute_tour_rating(tour_id)
        return review

    def recompute_tour_rating(self, tour_id: int) -> Optional[int]:
        """Store the aggregate rating of ``tour_id`` and return it.

        Returns ``None`` without writing when the tour no longer exists.
        """
        reviews = self.repository.get_reviews_by_tour(tour_id)
        rating = aggregate_rating([r.rating for r in reviews])
        if self.repository.update_tour_rating(tour_id, rating) is None:
            logger.warning(
                "Tour %s disappeared before its rating could be updated; skipped", tour_id
            )
            return None
        logger.info("Tour %s rating recomputed from %d reviews: %d", tour_id, len(reviews), rating)
        return rating

    def list_reviews_for_tour(self, tour_id: int) -> List[Review]:
        return self.repository.get_reviews_by_tour(tour_id)

    def get_review(self, review_id: int) -> Review:
        review = self.repository.get_review(review_id)
        if review is None:
            raise NotFound(f"Review {review_id} not found", field="review_id", value=review_id)
        return review
