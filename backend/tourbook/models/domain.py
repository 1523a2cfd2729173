from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class UserType(str, Enum):
    traveler = "traveler"
    agency = "agency"


# Strict policy only; the default policy lets any status move to any other.
STRICT_TRANSITIONS: Dict[BookingStatus, frozenset] = {
    BookingStatus.pending: frozenset(
        {BookingStatus.pending, BookingStatus.confirmed, BookingStatus.cancelled}
    ),
    BookingStatus.confirmed: frozenset(
        {BookingStatus.confirmed, BookingStatus.cancelled}
    ),
    BookingStatus.cancelled: frozenset({BookingStatus.cancelled}),
}


def round_half_up(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` to the nearest int, halves going up.

    Works on exact integers so that 1875.5 and 46.666... never pick up float
    error. Both arguments are non-negative in every caller.
    """
    return (2 * numerator + denominator) // (2 * denominator)


@dataclass
class RoutePoint:
    name: str
    lat: float
    lng: float


@dataclass
class Tour:
    id: int
    title: str
    description: str
    location: str
    duration: str
    price: int
    max_people: int
    category: str
    rating: int = 0
    image_url: str = ""
    tags: List[str] = field(default_factory=list)
    is_hot: bool = False
    included: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    program: str = ""
    route: Optional[List[RoutePoint]] = None
    agency_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Booking:
    id: int
    tour_id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    people_count: int
    status: BookingStatus
    total_price: int
    created_at: datetime
    user_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class Review:
    id: int
    tour_id: int
    user_id: str
    rating: int
    comment: str
    created_at: datetime


@dataclass
class CurrentUser:
    user_id: str
    user_type: UserType

    @property
    def is_agency(self) -> bool:
        return self.user_type == UserType.agency
