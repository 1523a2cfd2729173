from contextlib import contextmanager

import pytest

from tourbook.core.errors import InvalidArgument, NotFound
from tourbook.models.domain import BookingStatus
from tourbook.services.booking_service import BookingService, compute_total_price
from tourbook.storage.repository import InMemoryRepository


def make_tour(repository, price=15000, max_people=8):
    return repository.create_tour(
        {
            "title": "Karelian Lakes",
            "description": "Lakes and forest",
            "location": "Karelia",
            "duration": "3 days",
            "price": price,
            "max_people": max_people,
            "category": "nature",
        }
    )


def book(service, tour_id, people_count=1, **overrides):
    fields = dict(
        tour_id=tour_id,
        first_name="Anna",
        last_name="Petrova",
        email="anna@example.com",
        phone="+7 900 000 00 00",
        people_count=people_count,
    )
    fields.update(overrides)
    return service.create_booking(**fields)


def test_booking_creates_pending_record_with_price_share():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository)

    booking = book(service, tour.id, people_count=1)

    assert booking.status == BookingStatus.pending
    assert booking.total_price == 1875
    assert booking.created_at is not None
    assert repository.get_booking(booking.id) == booking


@pytest.mark.parametrize(
    "price,max_people,people_count,expected",
    [
        (15000, 8, 8, 15000),
        (20000, 4, 2, 10000),
        (100, 3, 1, 33),
        (100, 3, 2, 67),
        (5, 2, 1, 3),  # 2.5 rounds up
    ],
)
def test_total_price_rounds_half_up(price, max_people, people_count, expected):
    assert compute_total_price(price, max_people, people_count) == expected


@pytest.mark.parametrize("people_count", [0, -1, 9])
def test_people_count_out_of_bounds_is_rejected(people_count):
    repository = InMemoryRepository()
    tour = make_tour(repository, max_people=8)
    service = BookingService(repository=repository)

    with pytest.raises(InvalidArgument) as excinfo:
        book(service, tour.id, people_count=people_count)

    assert excinfo.value.field == "people_count"
    assert repository.list_bookings() == []


def test_upper_bound_message_names_max_people():
    repository = InMemoryRepository()
    tour = make_tour(repository, max_people=4)
    service = BookingService(repository=repository)

    with pytest.raises(InvalidArgument, match="must not exceed 4"):
        book(service, tour.id, people_count=5)


def test_booking_unknown_tour_raises_not_found():
    service = BookingService(repository=InMemoryRepository())

    with pytest.raises(NotFound):
        book(service, 42)


def test_blank_contact_field_is_rejected():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository)

    with pytest.raises(InvalidArgument) as excinfo:
        book(service, tour.id, last_name="   ")

    assert excinfo.value.field == "last_name"


def test_contact_fields_are_trimmed_and_guests_allowed():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository)

    booking = book(service, tour.id, first_name="  Anna ", notes="vegetarian")

    assert booking.first_name == "Anna"
    assert booking.user_id is None
    assert booking.notes == "vegetarian"


def test_list_bookings_filters_by_tour_in_insertion_order():
    repository = InMemoryRepository()
    first = make_tour(repository)
    second = make_tour(repository)
    service = BookingService(repository=repository)

    a = book(service, first.id)
    b = book(service, second.id)
    c = book(service, first.id)

    assert [x.id for x in service.list_bookings()] == [a.id, b.id, c.id]
    assert [x.id for x in service.list_bookings(tour_id=first.id)] == [a.id, c.id]


def test_status_can_move_freely_by_default():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository)
    booking = book(service, tour.id, people_count=2)

    assert service.update_booking_status(booking.id, "cancelled").status == BookingStatus.cancelled
    assert service.update_booking_status(booking.id, "confirmed").status == BookingStatus.confirmed
    updated = service.update_booking_status(booking.id, "confirmed")

    assert updated.status == BookingStatus.confirmed
    assert updated.total_price == booking.total_price


def test_invalid_status_leaves_booking_unchanged():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository)
    booking = book(service, tour.id)

    with pytest.raises(InvalidArgument) as excinfo:
        service.update_booking_status(booking.id, "shipped")

    assert excinfo.value.field == "status"
    assert service.get_booking(booking.id).status == BookingStatus.pending


def test_status_update_unknown_booking_raises_not_found():
    service = BookingService(repository=InMemoryRepository())

    with pytest.raises(NotFound):
        service.update_booking_status(7, "confirmed")
    with pytest.raises(NotFound):
        service.get_booking(7)


def test_strict_transitions_block_reopening_cancelled_booking():
    repository = InMemoryRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository, strict_transitions=True)
    booking = book(service, tour.id)

    service.update_booking_status(booking.id, "confirmed")
    service.update_booking_status(booking.id, "cancelled")

    with pytest.raises(InvalidArgument):
        service.update_booking_status(booking.id, "pending")
    assert service.get_booking(booking.id).status == BookingStatus.cancelled


def test_total_price_is_a_snapshot():
    repository = InMemoryRepository()
    tour = make_tour(repository, price=20000, max_people=4)
    service = BookingService(repository=repository)
    booking = book(service, tour.id, people_count=2)

    repository.update_tour(tour.id, {"price": 99999})

    assert service.get_booking(booking.id).total_price == 10000


class TransactionTrackingRepository(InMemoryRepository):
    def __init__(self):
        super().__init__()
        self.depth = 0
        self.calls = []

    @contextmanager
    def transaction(self):
        with super().transaction():
            self.depth += 1
            try:
                yield
            finally:
                self.depth -= 1

    def get_booking(self, booking_id, for_update=False):
        self.calls.append(("get_booking", for_update, self.depth > 0))
        return super().get_booking(booking_id, for_update=for_update)

    def update_booking_status(self, booking_id, status):
        self.calls.append(("update_booking_status", None, self.depth > 0))
        return super().update_booking_status(booking_id, status)


def test_strict_transition_check_and_write_share_a_transaction():
    repository = TransactionTrackingRepository()
    tour = make_tour(repository)
    service = BookingService(repository=repository, strict_transitions=True)
    booking = book(service, tour.id)

    service.update_booking_status(booking.id, "confirmed")

    assert repository.calls == [
        ("get_booking", True, True),
        ("update_booking_status", None, True),
    ]


def test_strict_transition_unknown_booking_raises_not_found():
    service = BookingService(repository=InMemoryRepository(), strict_transitions=True)

    with pytest.raises(NotFound):
        service.update_booking_status(3, "confirmed")
