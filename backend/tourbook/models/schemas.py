from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from tourbook.models.domain import (
    Booking,
    BookingStatus,
    Review,
    RoutePoint,
    Tour,
)


class RoutePointSchema(BaseModel):
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def _route_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("route") is not None:
        data["route"] = [RoutePoint(**p) for p in data["route"]]
    return data


class TourCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1, max_length=255)
    duration: str = Field(..., min_length=1, max_length=100)
    price: int = Field(..., ge=0)
    max_people: int = Field(..., ge=1)
    category: str = Field(..., min_length=1, max_length=100)
    image_url: str = ""
    tags: List[str] = Field(default_factory=list)
    is_hot: bool = False
    included: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)
    program: str = ""
    route: Optional[List[RoutePointSchema]] = None

    def to_fields(self) -> Dict[str, Any]:
        return _route_fields(self.model_dump())


class TourUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    duration: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    max_people: Optional[int] = Field(None, ge=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    is_hot: Optional[bool] = None
    included: Optional[List[str]] = None
    excluded: Optional[List[str]] = None
    program: Optional[str] = None
    route: Optional[List[RoutePointSchema]] = None

    # Omitted means "leave unchanged"; only ``route`` may be cleared with null.
    @field_validator(
        "title",
        "description",
        "location",
        "duration",
        "price",
        "max_people",
        "category",
        "image_url",
        "tags",
        "is_hot",
        "included",
        "excluded",
        "program",
    )
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v

    def to_changes(self) -> Dict[str, Any]:
        return _route_fields(self.model_dump(exclude_unset=True))


class TourSchema(BaseModel):
    id: int
    title: str
    description: str
    location: str
    duration: str
    price: int
    max_people: int
    rating: int
    image_url: str
    category: str
    tags: List[str]
    is_hot: bool
    included: List[str]
    excluded: List[str]
    program: str
    route: Optional[List[RoutePointSchema]] = None
    agency_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, obj: Tour) -> "TourSchema":
        return cls(
            id=obj.id,
            title=obj.title,
            description=obj.description,
            location=obj.location,
            duration=obj.duration,
            price=obj.price,
            max_people=obj.max_people,
            rating=obj.rating,
            image_url=obj.image_url,
            category=obj.category,
            tags=obj.tags,
            is_hot=obj.is_hot,
            included=obj.included,
            excluded=obj.excluded,
            program=obj.program,
            route=(
                [RoutePointSchema(name=p.name, lat=p.lat, lng=p.lng) for p in obj.route]
                if obj.route is not None
                else None
            ),
            agency_id=obj.agency_id,
            created_at=obj.created_at,
        )


class BookingCreate(BaseModel):
    tour_id: int
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    people_count: int
    notes: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: str


class BookingSchema(BaseModel):
    id: int
    tour_id: int
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone: str
    people_count: int
    notes: Optional[str] = None
    status: BookingStatus
    total_price: int
    created_at: datetime

    @classmethod
    def from_domain(cls, obj: Booking) -> "BookingSchema":
        return cls(
            id=obj.id,
            tour_id=obj.tour_id,
            user_id=obj.user_id,
            first_name=obj.first_name,
            last_name=obj.last_name,
            email=obj.email,
            phone=obj.phone,
            people_count=obj.people_count,
            notes=obj.notes,
            status=obj.status,
            total_price=obj.total_price,
            created_at=obj.created_at,
        )


class ReviewCreate(BaseModel):
    rating: int
    comment: str

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: str) -> str:
        return v.strip()


class ReviewSchema(BaseModel):
    id: int
    tour_id: int
    user_id: str
    rating: int
    comment: str
    created_at: datetime

    @classmethod
    def from_domain(cls, obj: Review) -> "ReviewSchema":
        return cls(
            id=obj.id,
            tour_id=obj.tour_id,
            user_id=obj.user_id,
            rating=obj.rating,
            comment=obj.comment,
            created_at=obj.created_at,
        )
