from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from tourbook.core.errors import Unavailable
from tourbook.models.domain import Booking, BookingStatus, Review, RoutePoint, Tour
from tourbook.storage.repository import utcnow

logger = logging.getLogger(__name__)

Base = declarative_base()


class TourRow(Base):
    __tablename__ = "tours"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=False)
    duration = Column(String(100), nullable=False)
    price = Column(Integer, nullable=False)
    max_people = Column(Integer, nullable=False)
    rating = Column(Integer, nullable=False, default=0)  # mean * 10
    image_url = Column(String(500), nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    is_hot = Column(Boolean, nullable=False, default=False)
    included = Column(JSON, nullable=False, default=list)
    excluded = Column(JSON, nullable=False, default=list)
    program = Column(Text, nullable=False, default="")
    route = Column(JSON, nullable=True)
    agency_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    bookings = relationship("BookingRow", back_populates="tour", cascade="all, delete-orphan")
    reviews = relationship("ReviewRow", back_populates="tour", cascade="all, delete-orphan")


class BookingRow(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, index=True)
    tour_id = Column(Integer, ForeignKey("tours.id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    people_count = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.pending.value)
    total_price = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tour = relationship("TourRow", back_populates="bookings")


class ReviewRow(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    tour_id = Column(Integer, ForeignKey("tours.id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tour = relationship("TourRow", back_populates="reviews")


# ---------- Row <-> domain conversion ----------

def _route_to_json(route: Optional[List[RoutePoint]]) -> Optional[list]:
    if route is None:
        return None
    return [asdict(point) for point in route]


def _tour_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    columns = dict(data)
    if "route" in columns:
        columns["route"] = _route_to_json(columns["route"])
    return columns


def _tour_from_row(row: TourRow) -> Tour:
    return Tour(
        id=row.id,
        title=row.title,
        description=row.description,
        location=row.location,
        duration=row.duration,
        price=row.price,
        max_people=row.max_people,
        rating=row.rating,
        image_url=row.image_url,
        category=row.category,
        tags=list(row.tags or []),
        is_hot=bool(row.is_hot),
        included=list(row.included or []),
        excluded=list(row.excluded or []),
        program=row.program,
        route=[RoutePoint(**p) for p in row.route] if row.route is not None else None,
        agency_id=row.agency_id,
        created_at=row.created_at,
    )


def _booking_from_row(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        tour_id=row.tour_id,
        user_id=row.user_id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone=row.phone,
        people_count=row.people_count,
        notes=row.notes,
        status=BookingStatus(row.status),
        total_price=row.total_price,
        created_at=row.created_at,
    )


def _review_from_row(row: ReviewRow) -> Review:
    return Review(
        id=row.id,
        tour_id=row.tour_id,
        user_id=row.user_id,
        rating=row.rating,
        comment=row.comment,
        created_at=row.created_at,
    )


def build_engine(database_url: str) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)
    if ":memory:" in database_url or database_url == "sqlite://":
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"check_same_thread": False})


class SqlRepository:
    """Relational implementation of the repository contract.

    Each public call runs in its own session transaction unless it is made
    inside ``transaction()``, in which case it joins the open session of the
    current thread.
    """

    def __init__(self, database_url: str = "sqlite:///./tourbook.db", engine: Engine | None = None):
        self.engine = engine or build_engine(database_url)
        Base.metadata.create_all(bind=self.engine)
        self._sessions = sessionmaker(bind=self.engine, autoflush=True, expire_on_commit=False)
        self._local = threading.local()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return
        session = self._sessions()
        self._local.session = session
        try:
            yield
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Storage failure, transaction rolled back: %s", exc)
            raise Unavailable("Storage is unavailable") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self.transaction():
            yield self._local.session

    # Tours

    def get_tour(self, tour_id: int, for_update: bool = False) -> Optional[Tour]:
        with self._session() as session:
            # FOR UPDATE holds the row until the enclosing transaction ends
            # (not emitted on SQLite, whose writers are serialised anyway).
            row = session.get(TourRow, tour_id, with_for_update=for_update or None)
            return _tour_from_row(row) if row else None

    def list_tours(
        self, category: Optional[str] = None, hot: Optional[bool] = None
    ) -> List[Tour]:
        with self._session() as session:
            query = select(TourRow).order_by(TourRow.id)
            if category is not None:
                query = query.where(TourRow.category == category)
            if hot is not None:
                query = query.where(TourRow.is_hot == hot)
            return [_tour_from_row(row) for row in session.scalars(query)]

    def create_tour(self, data: Dict[str, Any]) -> Tour:
        with self._session() as session:
            row = TourRow(**_tour_columns(data))
            session.add(row)
            session.flush()
            return _tour_from_row(row)

    def update_tour(self, tour_id: int, changes: Dict[str, Any]) -> Optional[Tour]:
        with self._session() as session:
            row = session.get(TourRow, tour_id)
            if row is None:
                return None
            for key, value in _tour_columns(changes).items():
                setattr(row, key, value)
            session.flush()
            return _tour_from_row(row)

    def delete_tour(self, tour_id: int) -> bool:
        with self._session() as session:
            row = session.get(TourRow, tour_id)
            if row is None:
                return False
            session.delete(row)
            return True

    def update_tour_rating(self, tour_id: int, rating: int) -> Optional[Tour]:
        return self.update_tour(tour_id, {"rating": rating})

    # Bookings

    def create_booking(self, data: Dict[str, Any]) -> Booking:
        with self._session() as session:
            columns = dict(data)
            columns["status"] = BookingStatus(columns["status"]).value
            row = BookingRow(**columns)
            session.add(row)
            session.flush()
            return _booking_from_row(row)

    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        with self._session() as session:
            row = session.get(BookingRow, booking_id, with_for_update=for_update or None)
            return _booking_from_row(row) if row else None

    def list_bookings(self) -> List[Booking]:
        with self._session() as session:
            rows = session.scalars(select(BookingRow).order_by(BookingRow.id))
            return [_booking_from_row(row) for row in rows]

    def get_bookings_by_tour(self, tour_id: int) -> List[Booking]:
        with self._session() as session:
            rows = session.scalars(
                select(BookingRow)
                .where(BookingRow.tour_id == tour_id)
                .order_by(BookingRow.id)
            )
            return [_booking_from_row(row) for row in rows]

    def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            if row is None:
                return None
            row.status = BookingStatus(status).value
            session.flush()
            return _booking_from_row(row)

    # Reviews

    def create_review(self, data: Dict[str, Any]) -> Review:
        with self._session() as session:
            row = ReviewRow(**data)
            session.add(row)
            session.flush()
            return _review_from_row(row)

    def get_review(self, review_id: int) -> Optional[Review]:
        with self._session() as session:
            row = session.get(ReviewRow, review_id)
            return _review_from_row(row) if row else None

    def get_reviews_by_tour(self, tour_id: int) -> List[Review]:
        with self._session() as session:
            rows = session.scalars(
                select(ReviewRow)
                .where(ReviewRow.tour_id == tour_id)
                .order_by(ReviewRow.id)
            )
            return [_review_from_row(row) for row in rows]
