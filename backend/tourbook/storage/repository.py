from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol

from tourbook.models.domain import Booking, BookingStatus, Review, Tour


class Repository(Protocol):
    """Storage contract shared by the booking, rating and catalog services.

    Lookups return ``None`` (or ``False`` for deletes) when the record does not
    exist; services turn that into ``NotFound``. Every method is atomic for a
    single record. ``transaction()`` groups several calls into one unit.
    """

    def get_tour(self, tour_id: int, for_update: bool = False) -> Optional[Tour]:
        ...

    def list_tours(
        self, category: Optional[str] = None, hot: Optional[bool] = None
    ) -> List[Tour]:
        ...

    def create_tour(self, data: Dict[str, Any]) -> Tour:
        ...

    def update_tour(self, tour_id: int, changes: Dict[str, Any]) -> Optional[Tour]:
        ...

    def delete_tour(self, tour_id: int) -> bool:
        ...

    def update_tour_rating(self, tour_id: int, rating: int) -> Optional[Tour]:
        ...

    def create_booking(self, data: Dict[str, Any]) -> Booking:
        ...

    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        ...

    def list_bookings(self) -> List[Booking]:
        ...

    def get_bookings_by_tour(self, tour_id: int) -> List[Booking]:
        ...

    def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]:
        ...

    def create_review(self, data: Dict[str, Any]) -> Review:
        ...

    def get_review(self, review_id: int) -> Optional[Review]:
        ...

    def get_reviews_by_tour(self, tour_id: int) -> List[Review]:
        ...

    def transaction(self) -> ContextManager[None]:
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRepository:
    def __init__(self) -> None:
        self.tours: Dict[int, Tour] = {}
        self.bookings: Dict[int, Booking] = {}
        self.reviews: Dict[int, Review] = {}
        self._next_ids = {"tour": 1, "booking": 1, "review": 1}
        self._lock = threading.RLock()

    def _issue_id(self, kind: str) -> int:
        issued = self._next_ids[kind]
        self._next_ids[kind] = issued + 1
        return issued

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    # Tours

    def get_tour(self, tour_id: int, for_update: bool = False) -> Optional[Tour]:
        # Row locking is covered by transaction(), which holds the store lock.
        with self._lock:
            return copy.deepcopy(self.tours.get(tour_id))

    def list_tours(
        self, category: Optional[str] = None, hot: Optional[bool] = None
    ) -> List[Tour]:
        with self._lock:
            tours = [
                t
                for t in self.tours.values()
                if (category is None or t.category == category)
                and (hot is None or t.is_hot == hot)
            ]
            return copy.deepcopy(tours)

    def create_tour(self, data: Dict[str, Any]) -> Tour:
        with self._lock:
            tour = Tour(id=self._issue_id("tour"), created_at=utcnow(), **copy.deepcopy(data))
            self.tours[tour.id] = tour
            return copy.deepcopy(tour)

    def update_tour(self, tour_id: int, changes: Dict[str, Any]) -> Optional[Tour]:
        with self._lock:
            tour = self.tours.get(tour_id)
            if tour is None:
                return None
            for key, value in copy.deepcopy(changes).items():
                setattr(tour, key, value)
            return copy.deepcopy(tour)

    def delete_tour(self, tour_id: int) -> bool:
        with self._lock:
            if self.tours.pop(tour_id, None) is None:
                return False
            self.bookings = {
                k: b for k, b in self.bookings.items() if b.tour_id != tour_id
            }
            self.reviews = {
                k: r for k, r in self.reviews.items() if r.tour_id != tour_id
            }
            return True

    def update_tour_rating(self, tour_id: int, rating: int) -> Optional[Tour]:
        return self.update_tour(tour_id, {"rating": rating})

    # Bookings

    def create_booking(self, data: Dict[str, Any]) -> Booking:
        with self._lock:
            booking = Booking(
                id=self._issue_id("booking"), created_at=utcnow(), **copy.deepcopy(data)
            )
            self.bookings[booking.id] = booking
            return copy.deepcopy(booking)

    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        with self._lock:
            return copy.deepcopy(self.bookings.get(booking_id))

    def list_bookings(self) -> List[Booking]:
        with self._lock:
            return copy.deepcopy(list(self.bookings.values()))

    def get_bookings_by_tour(self, tour_id: int) -> List[Booking]:
        with self._lock:
            return copy.deepcopy(
                [b for b in self.bookings.values() if b.tour_id == tour_id]
            )

    def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]:
        with self._lock:
            booking = self.bookings.get(booking_id)
            if booking is None:
                return None
            booking.status = status
            return copy.deepcopy(booking)

    # Reviews

    def create_review(self, data: Dict[str, Any]) -> Review:
        with self._lock:
            review = Review(
                id=self._issue_id("review"), created_at=utcnow(), **copy.deepcopy(data)
            )
            self.reviews[review.id] = review
            return copy.deepcopy(review)

    def get_review(self, review_id: int) -> Optional[Review]:
        with self._lock:
            return copy.deepcopy(self.reviews.get(review_id))

    def get_reviews_by_tour(self, tour_id: int) -> List[Review]:
        with self._lock:
            return copy.deepcopy(
                [r for r in self.reviews.values() if r.tour_id == tour_id]
            )
