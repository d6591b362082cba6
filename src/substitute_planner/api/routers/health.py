from __future__ import annotations

from fastapi import APIRouter

from substitute_planner.api.schemas import HealthResponse
from substitute_planner.settings import load_settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    settings = load_settings()
    return HealthResponse(status="ok", app=settings.app_name, version=settings.app_version)
