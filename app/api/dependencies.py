"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and dashboard toggles.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from fastapi import Depends, File, HTTPException, Query, Request, UploadFile, status

from app.config import DashboardSettings, get_dashboard_settings
from app.domain.period import normalize_period
from db.repositories.validators import ALLOWED_EXTENSIONS


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV or Excel workbook by extension.
    """

    extension = Path((file.filename or "").strip().lower()).suffix
    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {', '.join(sorted(ALLOWED_EXTENSIONS))} files are allowed.",
        )
    return file


def get_request_dashboard_settings(request: Request) -> DashboardSettings:
    """
    Dashboard toggles stored on the app at startup.
    """

    settings = getattr(request.app.state, "dashboard_settings", None)
    return settings if settings is not None else get_dashboard_settings()


def require_section(section: str) -> Callable[[DashboardSettings], None]:
    """
    Dependency factory that 404s when a dashboard section is switched off.
    """

    def _check(settings: DashboardSettings = Depends(get_request_dashboard_settings)) -> None:
        if not settings.is_enabled(section):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Dashboard section '{section}' is disabled.",
            )

    return _check


def parse_period(raw: str, *, name: str = "period") -> str:
    """
    Canonical period from a query value; 400 when it cannot be read.
    """

    period = normalize_period(raw)
    if period is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} '{raw}'. Expected e.g. 2024Q4.",
        )
    return period


def get_required_period(period: str | None = Query(default=None, description="Quarter, e.g. 2024Q4")) -> str:
    if period is None or not period.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Period parameter is required.",
        )
    return parse_period(period)


def get_optional_period(period: str | None = Query(default=None, description="Quarter, e.g. 2024Q4")) -> str | None:
    return None if period is None else parse_period(period)
