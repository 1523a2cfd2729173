from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from tourbook.api import get_app_settings, get_repository, require_agency, require_user
from tourbook.core.config import Settings
from tourbook.models.domain import CurrentUser
from tourbook.models.schemas import (
    ReviewCreate,
    ReviewSchema,
    TourCreate,
    TourSchema,
    TourUpdate,
)
from tourbook.services.rating_service import RatingService
from tourbook.services.tour_service import TourService
from tourbook.storage.repository import Repository

router = APIRouter()


def get_tour_service(repository: Repository = Depends(get_repository)) -> TourService:
    return TourService(repository=repository)


def get_rating_service(
    repository: Repository = Depends(get_repository),
    app_settings: Settings = Depends(get_app_settings),
) -> RatingService:
    return RatingService(
        repository=repository,
        one_review_per_user=app_settings.one_review_per_user,
    )


def get_review_payload(
    payload: ReviewCreate,
    app_settings: Settings = Depends(get_app_settings),
) -> ReviewCreate:
    minimum = app_settings.review_min_comment_length
    if len(payload.comment) < minimum:
        raise HTTPException(
            status_code=422, detail=f"comment must be at least {minimum} characters"
        )
    return payload


@router.get("/", response_model=List[TourSchema])
def list_tours(
    category: Optional[str] = None,
    hot: bool = False,
    service: TourService = Depends(get_tour_service),
) -> List[TourSchema]:
    return [TourSchema.from_domain(t) for t in service.list_tours(category=category, hot=hot)]


@router.get("/{tour_id}", response_model=TourSchema)
def get_tour(tour_id: int, service: TourService = Depends(get_tour_service)) -> TourSchema:
    return TourSchema.from_domain(service.get_tour(tour_id))


@router.post("/", response_model=TourSchema, status_code=status.HTTP_201_CREATED)
def create_tour(
    payload: TourCreate,
    service: TourService = Depends(get_tour_service),
    agency: CurrentUser = Depends(require_agency),
) -> TourSchema:
    return TourSchema.from_domain(service.create_tour(payload.to_fields(), owner=agency))


@router.put("/{tour_id}", response_model=TourSchema)
def update_tour(
    tour_id: int,
    payload: TourUpdate,
    service: TourService = Depends(get_tour_service),
    agency: CurrentUser = Depends(require_agency),
) -> TourSchema:
    return TourSchema.from_domain(service.update_tour(tour_id, payload.to_changes(), user=agency))


@router.delete("/{tour_id}")
def delete_tour(
    tour_id: int,
    service: TourService = Depends(get_tour_service),
    agency: CurrentUser = Depends(require_agency),
) -> dict:
    service.delete_tour(tour_id, user=agency)
    return {"status": "deleted"}


@router.get("/{tour_id}/reviews", response_model=List[ReviewSchema])
def list_reviews(
    tour_id: int, service: RatingService = Depends(get_rating_service)
) -> List[ReviewSchema]:
    return [ReviewSchema.from_domain(r) for r in service.list_reviews_for_tour(tour_id)]


@router.post(
    "/{tour_id}/reviews",
    response_model=ReviewSchema,
    status_code=status.HTTP_201_CREATED,
)
def submit_review(
    tour_id: int,
    payload: ReviewCreate = Depends(get_review_payload),
    service: RatingService = Depends(get_rating_service),
    user: CurrentUser = Depends(require_user),
) -> ReviewSchema:
    review = service.submit_review(
        tour_id=tour_id,
        user_id=user.user_id,
        rating=payload.rating,
        comment=payload.comment,
    )
    return ReviewSchema.from_domain(review)
