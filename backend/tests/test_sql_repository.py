import pytest
from sqlalchemy.exc import OperationalError

from tourbook.core.errors import Conflict, InvalidArgument, NotFound, Unavailable
from tourbook.models.domain import BookingStatus, RoutePoint
from tourbook.services.booking_service import BookingService
from tourbook.services.rating_service import RatingService
from tourbook.storage.seed import SAMPLE_TOURS, seed_sample_tours
from tourbook.storage.sql import SqlRepository

TEST_DATABASE_URL = "sqlite:///:memory:"
COMMENT = "Clear ice and a friendly crew"


@pytest.fixture()
def repository():
    repo = SqlRepository(database_url=TEST_DATABASE_URL)
    yield repo
    repo.engine.dispose()


def create_tour_dict(**overrides):
    data = {
        "title": "Golden Ring",
        "description": "Historic towns",
        "location": "Vladimir",
        "duration": "5 days",
        "price": 20000,
        "max_people": 4,
        "category": "cultural",
        "tags": ["history"],
        "included": ["Transfer", "Hotel"],
        "route": [RoutePoint(name="Vladimir", lat=56.13, lng=40.4)],
    }
    data.update(overrides)
    return data


def test_tour_round_trip_keeps_lists_and_route(repository):
    tour = repository.create_tour(create_tour_dict())

    loaded = repository.get_tour(tour.id)

    assert loaded.tags == ["history"]
    assert loaded.included == ["Transfer", "Hotel"]
    assert loaded.route == [RoutePoint(name="Vladimir", lat=56.13, lng=40.4)]
    assert loaded.rating == 0
    assert repository.get_tour(tour.id + 100) is None


def test_list_tours_filters(repository):
    seed_sample_tours(repository)

    assert len(repository.list_tours()) == len(SAMPLE_TOURS)
    assert [t.title for t in repository.list_tours(category="cultural")] == ["Golden Ring"]
    assert all(t.is_hot for t in repository.list_tours(hot=True))
    assert seed_sample_tours(repository) == 0


def test_booking_and_rating_scenario_on_sql(repository):
    tour = repository.create_tour(create_tour_dict())
    bookings = BookingService(repository=repository)
    ratings = RatingService(repository=repository)

    booking = bookings.create_booking(
        tour_id=tour.id,
        first_name="Olga",
        last_name="Ivanova",
        email="olga@example.com",
        phone="+7 900 222 33 44",
        people_count=2,
    )
    assert booking.total_price == 10000
    assert booking.status == BookingStatus.pending

    assert bookings.update_booking_status(booking.id, "confirmed").status == BookingStatus.confirmed
    assert repository.get_booking(booking.id).status == BookingStatus.confirmed

    ratings.submit_review(tour.id, "u1", 5, COMMENT)
    ratings.submit_review(tour.id, "u2", 3, COMMENT)

    assert repository.get_tour(tour.id).rating == 40
    assert [r.rating for r in repository.get_reviews_by_tour(tour.id)] == [5, 3]


def test_failed_review_submission_rolls_back(repository):
    ratings = RatingService(repository=repository)

    with pytest.raises(NotFound):
        ratings.submit_review(1, "u1", 5, COMMENT)

    assert repository.get_reviews_by_tour(1) == []


def test_delete_tour_cascades(repository):
    tour = repository.create_tour(create_tour_dict())
    BookingService(repository=repository).create_booking(
        tour_id=tour.id,
        first_name="Olga",
        last_name="Ivanova",
        email="olga@example.com",
        phone="+7 900 222 33 44",
        people_count=1,
    )
    RatingService(repository=repository).submit_review(tour.id, "u1", 4, COMMENT)

    assert repository.delete_tour(tour.id) is True

    assert repository.get_tour(tour.id) is None
    assert repository.list_bookings() == []
    assert repository.get_reviews_by_tour(tour.id) == []
    assert repository.delete_tour(tour.id) is False


def test_update_missing_records_return_none(repository):
    assert repository.update_tour_rating(5, 40) is None
    assert repository.update_booking_status(5, BookingStatus.cancelled) is None


def test_storage_failure_surfaces_as_unavailable(repository, monkeypatch):
    def broken_get(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr("sqlalchemy.orm.Session.get", broken_get)

    with pytest.raises(Unavailable):
        repository.get_booking(1)


def test_locking_reads_inside_transaction(repository):
    tour = repository.create_tour(create_tour_dict())
    ratings = RatingService(repository=repository, one_review_per_user=True)

    with repository.transaction():
        assert repository.get_tour(tour.id, for_update=True).id == tour.id
        assert repository.get_booking(1, for_update=True) is None

    ratings.submit_review(tour.id, "u1", 4, COMMENT)
    with pytest.raises(Conflict):
        ratings.submit_review(tour.id, "u1", 2, COMMENT)
    assert repository.get_tour(tour.id).rating == 40


def test_strict_transitions_on_sql(repository):
    tour = repository.create_tour(create_tour_dict())
    bookings = BookingService(repository=repository, strict_transitions=True)
    booking = bookings.create_booking(
        tour_id=tour.id,
        first_name="Olga",
        last_name="Ivanova",
        email="olga@example.com",
        phone="+7 900 222 33 44",
        people_count=1,
    )

    bookings.update_booking_status(booking.id, "cancelled")
    with pytest.raises(InvalidArgument):
        bookings.update_booking_status(booking.id, "confirmed")

    assert repository.get_booking(booking.id).status == BookingStatus.cancelled
