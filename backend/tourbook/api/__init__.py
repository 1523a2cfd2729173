from typing import Optional

from fastapi import Depends, Header, HTTPException
from starlette.requests import Request

from tourbook.core.config import Settings
from tourbook.core.errors import PermissionDenied, Unauthenticated
from tourbook.models.domain import CurrentUser, UserType
from tourbook.storage.repository import Repository


def get_repository(request: Request) -> Repository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(status_code=500, detail="Repository not initialized")
    return repository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_type: Optional[str] = Header(None),
) -> Optional[CurrentUser]:
    """Identity as forwarded by the auth proxy; ``None`` for guests."""
    if not x_user_id:
        return None
    try:
        user_type = UserType(x_user_type or UserType.traveler.value)
    except ValueError:
        raise Unauthenticated(
            "Unknown user type", field="user_type", value=x_user_type
        ) from None
    return CurrentUser(user_id=x_user_id, user_type=user_type)


def require_user(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if user is None:
        raise Unauthenticated("Authentication required")
    return user


def require_agency(user: CurrentUser = Depends(require_user)) -> CurrentUser:
    if not user.is_agency:
        raise PermissionDenied(
            "Agency account required", field="user_type", value=user.user_type.value
        )
    return user
