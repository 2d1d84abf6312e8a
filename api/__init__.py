"""
API Module
FastAPI routers for the CareLedger application
"""

from api.medications import router as medications_router
from api.adherence import router as adherence_router
from api.vitals import router as vitals_router
from api.reminders import router as reminders_router
from api.care_team import router as care_team_router
from api.patients import router as patients_router

from api.deps import (
    get_db,
    get_current_actor,
    require_doctor,
    patient_access,
    pagination_params,
    services,
)
from config import settings


__all__ = [
    # Routers
    "medications_router",
    "adherence_router",
    "vitals_router",
    "reminders_router",
    "care_team_router",
    "patients_router",
    # Dependencies
    "get_db",
    "get_current_actor",
    "require_doctor",
    "patient_access",
    "pagination_params",
    "services",
]


def include_routers(app):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(medications_router, prefix=settings.API_PREFIX)
    app.include_router(adherence_router, prefix=settings.API_PREFIX)
    app.include_router(vitals_router, prefix=settings.API_PREFIX)
    app.include_router(reminders_router, prefix=settings.API_PREFIX)
    app.include_router(care_team_router, prefix=settings.API_PREFIX)
    app.include_router(patients_router, prefix=settings.API_PREFIX)
