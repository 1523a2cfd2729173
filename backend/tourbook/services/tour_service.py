import logging
from typing import Any, Dict, List, Optional

from tourbook.core.errors import InvalidArgument, NotFound, PermissionDenied
from tourbook.models.domain import CurrentUser, Tour
from tourbook.storage.repository import Repository

logger = logging.getLogger(__name__)

# Fields derived or assigned by the service, never taken from input.
PROTECTED_FIELDS = {"id", "rating", "agency_id", "created_at"}


class TourService:
    def __init__(self, repository: Repository):
        self.repository = repository

    def list_tours(self, category: Optional[str] = None, hot: bool = False) -> List[Tour]:
        if hot:
            return self.repository.list_tours(hot=True)
        if category and category != "all":
            return self.repository.list_tours(category=category)
        return self.repository.list_tours()

    def get_tour(self, tour_id: int) -> Tour:
        tour = self.repository.get_tour(tour_id)
        if tour is None:
            raise NotFound(f"Tour {tour_id} not found", field="tour_id", value=tour_id)
        return tour

    def ensure_can_manage(self, tour: Tour, user: CurrentUser) -> None:
        """Agencies manage their own tours; unowned (seed) tours are open to any agency."""
        if not user.is_agency:
            raise PermissionDenied("Only agencies can manage tours", field="user_type", value=user.user_type.value)
        if tour.agency_id is not None and tour.agency_id != user.user_id:
            raise PermissionDenied(
                f"Tour {tour.id} belongs to another agency", field="agency_id", value=tour.agency_id
            )

    def create_tour(self, data: Dict[str, Any], owner: CurrentUser) -> Tour:
        if not owner.is_agency:
            raise PermissionDenied("Only agencies can create tours", field="user_type", value=owner.user_type.value)
        fields = self._clean(data)
        tour = self.repository.create_tour({**fields, "rating": 0, "agency_id": owner.user_id})
        logger.info("Agency %s created tour %s", owner.user_id, tour.id)
        return tour

    def update_tour(self, tour_id: int, changes: Dict[str, Any], user: CurrentUser) -> Tour:
        self.ensure_can_manage(self.get_tour(tour_id), user)
        tour = self.repository.update_tour(tour_id, self._clean(changes))
        if tour is None:
            raise NotFound(f"Tour {tour_id} not found", field="tour_id", value=tour_id)
        return tour

    def delete_tour(self, tour_id: int, user: CurrentUser) -> None:
        self.ensure_can_manage(self.get_tour(tour_id), user)
        if not self.repository.delete_tour(tour_id):
            raise NotFound(f"Tour {tour_id} not found", field="tour_id", value=tour_id)
        logger.info("Tour %s deleted with its bookings and reviews", tour_id)

    @staticmethod
    def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        if "max_people" in fields and fields["max_people"] < 1:
            raise InvalidArgument("max_people must be at least 1", field="max_people", value=fields["max_people"])
        if "price" in fields and fields["price"] < 0:
            raise InvalidArgument("price must not be negative", field="price", value=fields["price"])
        return fields
