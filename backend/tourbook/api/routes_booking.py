from typing import List, Optional

from fastapi import APIRouter, Depends, status

from tourbook.api import get_app_settings, get_current_user, get_repository, require_agency
from tourbook.core.config import Settings
from tourbook.models.domain import CurrentUser
from tourbook.models.schemas import BookingCreate, BookingSchema, BookingStatusUpdate
from tourbook.services.booking_service import BookingService
from tourbook.services.tour_service import TourService
from tourbook.storage.repository import Repository

router = APIRouter()


def get_booking_service(
    repository: Repository = Depends(get_repository),
    app_settings: Settings = Depends(get_app_settings),
) -> BookingService:
    return BookingService(
        repository=repository,
        strict_transitions=app_settings.strict_booking_transitions,
    )


@router.get("/", response_model=List[BookingSchema])
def list_bookings(
    tour_id: Optional[int] = None,
    service: BookingService = Depends(get_booking_service),
) -> List[BookingSchema]:
    return [BookingSchema.from_domain(b) for b in service.list_bookings(tour_id=tour_id)]


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: int, service: BookingService = Depends(get_booking_service)
) -> BookingSchema:
    return BookingSchema.from_domain(service.get_booking(booking_id))


@router.post("/", response_model=BookingSchema, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    user: Optional[CurrentUser] = Depends(get_current_user),
) -> BookingSchema:
    booking = service.create_booking(
        tour_id=payload.tour_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        people_count=payload.people_count,
        notes=payload.notes,
        user_id=user.user_id if user else None,
    )
    return BookingSchema.from_domain(booking)


@router.put("/{booking_id}", response_model=BookingSchema)
def update_booking_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
    repository: Repository = Depends(get_repository),
    agency: CurrentUser = Depends(require_agency),
) -> BookingSchema:
    tours = TourService(repository=repository)
    booking = service.get_booking(booking_id)
    tours.ensure_can_manage(tours.get_tour(booking.tour_id), agency)
    return BookingSchema.from_domain(service.update_booking_status(booking_id, payload.status))
