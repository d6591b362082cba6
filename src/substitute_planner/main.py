from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from substitute_planner.api.routers.assignments import router as assignments_router
from substitute_planner.api.routers.candidates import router as candidates_router
from substitute_planner.api.routers.distribution import router as distribution_router
from substitute_planner.api.routers.health import router as health_router
from substitute_planner.api.routers.sessions import router as sessions_router
from substitute_planner.logging import configure_logging
from substitute_planner.services.errors import BadRequestError, ConflictError, NotFoundError
from substitute_planner.settings import Settings, load_settings
from substitute_planner.domain.core.validate import ValidationError


def create_app(settings: Settings | None = None) -> FastAPI:
    active_settings = settings or load_settings()
    configure_logging(debug=active_settings.debug)

    app = FastAPI(title=active_settings.app_name, version=active_settings.app_version)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def handle_validation(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.errors})

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(_: Request, exc: BadRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def handle_conflict(_: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def handle_value_error(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(HTTPException)
    async def passthrough_http(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(candidates_router)
    app.include_router(distribution_router)
    app.include_router(assignments_router)

    return app


app = create_app()
