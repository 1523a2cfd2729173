import logging
from typing import List, Optional

from tourbook.core.errors import InvalidArgument, NotFound
from tourbook.models.domain import (
    STRICT_TRANSITIONS,
    Booking,
    BookingStatus,
    round_half_up,
)
from tourbook.storage.repository import Repository

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("first_name", "last_name", "email", "phone")


def compute_total_price(price: int, max_people: int, people_count: int) -> int:
    """Share of the tour price for ``people_count`` out of ``max_people`` seats."""
    return round_half_up(price * people_count, max_people)


def parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise InvalidArgument(
            f"status must be one of: {allowed}", field="status", value=value
        ) from None


class BookingService:
    def __init__(self, repository: Repository, strict_transitions: bool = False):
        self.repository = repository
        self.strict_transitions = strict_transitions

    def create_booking(
        self,
        tour_id: int,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        people_count: int,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Booking:
        contact = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
        }
        for name in CONTACT_FIELDS:
            value = contact[name]
            if not isinstance(value, str) or not value.strip():
                raise InvalidArgument(f"{name} is required", field=name, value=value)
            contact[name] = value.strip()

        if isinstance(people_count, bool) or not isinstance(people_count, int):
            raise InvalidArgument(
                "people_count must be an integer", field="people_count", value=people_count
            )

        tour = self.repository.get_tour(tour_id)
        if tour is None:
            raise NotFound(f"Tour {tour_id} not found", field="tour_id", value=tour_id)

        if people_count < 1:
            raise InvalidArgument(
                "people_count must be at least 1", field="people_count", value=people_count
            )
        if people_count > tour.max_people:
            raise InvalidArgument(
                f"people_count must not exceed {tour.max_people}",
                field="people_count",
                value=people_count,
            )

        booking = self.repository.create_booking(
            {
                "tour_id": tour.id,
                "user_id": user_id,
                **contact,
                "people_count": people_count,
                "notes": notes,
                "status": BookingStatus.pending,
                "total_price": compute_total_price(tour.price, tour.max_people, people_count),
            }
        )
        logger.info(
            "Created booking %s for tour %s (%d people, total %d)",
            booking.id,
            tour.id,
            people_count,
            booking.total_price,
        )
        return booking

    def list_bookings(self, tour_id: Optional[int] = None) -> List[Booking]:
        if tour_id is None:
            return self.repository.list_bookings()
        return self.repository.get_bookings_by_tour(tour_id)

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise NotFound(
                f"Booking {booking_id} not found", field="booking_id", value=booking_id
            )
        return booking

    def update_booking_status(self, booking_id: int, status) -> Booking:
        new_status = parse_status(status)
        with self.repository.transaction():
            if self.strict_transitions:
                current = self.repository.get_booking(booking_id, for_update=True)
                if current is None:
                    raise NotFound(
                        f"Booking {booking_id} not found", field="booking_id", value=booking_id
                    )
                if new_status not in STRICT_TRANSITIONS[current.status]:
                    raise InvalidArgument(
                        f"cannot move booking from {current.status.value} to {new_status.value}",
                        field="status",
                        value=new_status.value,
                    )

            booking = self.repository.update_booking_status(booking_id, new_status)
            if booking is None:
                raise NotFound(
                    f"Booking {booking_id} not found", field="booking_id", value=booking_id
                )
        logger.info("Booking %s is now %s", booking_id, new_status.value)
        return booking
