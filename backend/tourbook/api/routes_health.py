from fastapi import APIRouter, Depends

from tourbook.api import get_app_settings
from tourbook.core.config import Settings

router = APIRouter()


@router.get("/health")
def healthcheck(app_settings: Settings = Depends(get_app_settings)) -> dict:
    return {"status": "ok", "storage": app_settings.storage_backend}
