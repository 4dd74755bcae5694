"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

DASHBOARD_SECTIONS: tuple[str, ...] = ("overview", "ndi", "clarity", "cwv", "usage")

_ALLOWED_KPI_BACKENDS = {"mock"}
_ALLOWED_NDI_SOURCES = {"store", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_csv_env(name: str) -> tuple[str, ...]:
    """
    Read a comma-separated list, lower-cased, blanks dropped.
    """

    _load_env_once()
    raw_value = os.getenv(name) or ""
    return tuple(item.strip().lower() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for spreadsheet ingestion.
    """

    parse_timeout_seconds: float = 30.0
    batch_size: int = 1000
    max_warnings: int = 200
    log_row_warnings: bool = True
    storage_dir: str = "data/uploads"


@dataclass(frozen=True)
class DashboardSettings:
    """
    Feature toggles for the dashboard, built once at startup.

    Routers read this from ``request.app.state`` so tests can swap it
    without touching the environment.
    """

    disabled_sections: frozenset[str] = frozenset()
    kpi_backend: str = "mock"
    ndi_source: str = "store"

    def is_enabled(self, section: str) -> bool:
        return section not in self.disabled_sections

    @property
    def enabled_sections(self) -> tuple[str, ...]:
        return tuple(section for section in DASHBOARD_SECTIONS if self.is_enabled(section))


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment.
    """

    return IngestionSettings(
        parse_timeout_seconds=max(0.1, _get_float_env("INGEST_PARSE_TIMEOUT_SECONDS", 30.0)),
        batch_size=max(1, _get_int_env("INGEST_BATCH_SIZE", 1000)),
        max_warnings=max(1, _get_int_env("INGEST_MAX_WARNINGS", 200)),
        log_row_warnings=_get_bool_env("INGEST_LOG_ROW_WARNINGS", True),
        storage_dir=_get_str_env("UPLOAD_STORAGE_DIR", "data/uploads"),
    )


@lru_cache(maxsize=1)
def get_dashboard_settings() -> DashboardSettings:
    """
    Return cached dashboard settings from environment.

    Raises RuntimeError for unknown section names or KPI backends so a
    typo in deployment config fails at startup.
    """

    disabled = _get_csv_env("DASHBOARD_SECTIONS_DISABLED")
    unknown = sorted(set(disabled) - set(DASHBOARD_SECTIONS))
    if unknown:
        raise RuntimeError(
            f"DASHBOARD_SECTIONS_DISABLED contains unknown sections: {unknown}. "
            f"Allowed values: {list(DASHBOARD_SECTIONS)}."
        )

    backend = _get_str_env("KPI_BACKEND", "mock").lower()
    if backend not in _ALLOWED_KPI_BACKENDS:
        raise RuntimeError(
            f"KPI_BACKEND '{backend}' is not valid. Allowed values: {sorted(_ALLOWED_KPI_BACKENDS)}."
        )

    ndi_source = _get_str_env("KPI_NDI_SOURCE", "store").lower()
    if ndi_source not in _ALLOWED_NDI_SOURCES:
        raise RuntimeError(
            f"KPI_NDI_SOURCE '{ndi_source}' is not valid. Allowed values: {sorted(_ALLOWED_NDI_SOURCES)}."
        )

    return DashboardSettings(
        disabled_sections=frozenset(disabled),
        kpi_backend=backend,
        ndi_source=ndi_source,
    )
