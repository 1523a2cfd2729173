import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tourbook.api import routes_booking, routes_health, routes_tours
from tourbook.core.config import Settings, settings
from tourbook.core.errors import TourbookError
from tourbook.core.logging import configure_logging
from tourbook.storage.repository import InMemoryRepository, Repository
from tourbook.storage.seed import seed_sample_tours
from tourbook.storage.sql import SqlRepository

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "not_found": 404,
    "invalid_argument": 400,
    "conflict": 409,
    "unauthenticated": 401,
    "permission_denied": 403,
    "unavailable": 503,
}


def build_repository(app_settings: Settings) -> Repository:
    if app_settings.storage_backend == "sql":
        return SqlRepository(database_url=app_settings.database_url)
    return InMemoryRepository()


async def handle_domain_error(request: Request, exc: TourbookError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(
    app_settings: Settings | None = None, repository: Repository | None = None
) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)
    app = FastAPI(title=app_settings.app_name, version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TourbookError, handle_domain_error)

    if repository is None:
        repository = build_repository(app_settings)
        if app_settings.seed_sample_tours:
            seed_sample_tours(repository)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(routes_tours.router, prefix="/tours", tags=["tours"])
    app.include_router(routes_booking.router, prefix="/bookings", tags=["bookings"])

    app.state.repository = repository
    app.state.settings = app_settings
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
