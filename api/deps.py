"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from typing import Generator, Optional
from fastapi import Depends, HTTPException, status, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import SessionLocal
from models import ActorRole
from security import InvalidTokenError, decode_access_token
from services.access_service import Actor, access_service


bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency
    Yields a SQLAlchemy session and ensures cleanup
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Actor:
    """
    Resolve the caller from the bearer token
    Raises HTTPException 401 if missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id, role = decode_access_token(credentials.credentials)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Actor(id=user_id, role=role)


async def require_doctor(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role != ActorRole.DOCTOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only doctors may perform this action",
        )
    return actor


async def patient_access(
    patient_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
) -> int:
    """
    Gate a patient-scoped route through the access predicate
    and return the patient ID
    """
    access_service.ensure_access(actor, patient_id, db)
    return patient_id


def pagination_params(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
) -> dict:
    """
    Common pagination parameters
    """
    return {
        "page": page,
        "limit": limit,
        "offset": (page - 1) * limit
    }


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "current": page,
        "pages": (total + limit - 1) // limit if total else 0,
        "total": total,
    }


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_access_service():
        return access_service

    @staticmethod
    def get_medication_service():
        from services.medication_service import medication_service
        return medication_service

    @staticmethod
    def get_schedule_service():
        from services.schedule_service import schedule_service
        return schedule_service

    @staticmethod
    def get_adherence_service():
        from services.adherence_service import adherence_service
        return adherence_service

    @staticmethod
    def get_vital_service():
        from services.vital_service import vital_service
        return vital_service

    @staticmethod
    def get_reminder_service():
        from services.reminder_service import reminder_service
        return reminder_service

    @staticmethod
    def get_summary_service():
        from services.summary_service import summary_service
        return summary_service


# Service dependency instances
services = ServiceDependency()
