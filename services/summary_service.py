"""
Summary Service
Combined health overview: vital averages and intake outcomes over a period
"""

import logging
from typing import Dict, Optional, Any
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from database import get_db_context
from services.adherence_service import AdherenceService, adherence_service
from services.vital_service import VitalService, vital_service


logger = logging.getLogger(__name__)


class HealthSummaryService:
    """
    Service for patient health summaries
    """

    def __init__(
        self,
        ledger: Optional[AdherenceService] = None,
        vitals: Optional[VitalService] = None
    ):
        self.ledger = ledger or adherence_service
        self.vitals = vitals or vital_service

    async def get_health_summary(
        self,
        patient_id: int,
        days: int = 30,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Health overview for the last `days`

        Args:
            patient_id: Patient ID
            days: Period length in days
            now: Reference time, defaults to now
            db: Database session

        Returns:
            {"patient_id", "days_analyzed", "period_start", "period_end",
             "vitals": {reading_count, last_recorded, averages},
             "adherence": {total_doses, taken_doses, adherence_rate, by_status}}
        """
        def _summarize(session: Session) -> Dict[str, Any]:
            current = now or datetime.now()
            since = current - timedelta(days=days)

            vitals = self.vitals.sync_vital_stats(session, patient_id, since)
            adherence = self.ledger.sync_adherence(session, patient_id, None, days, current)

            logger.info(
                f"Built {days}-day health summary for patient {patient_id}: "
                f"{vitals['reading_count']} reading(s), "
                f"{adherence['overall']['total_doses']} dose(s)"
            )
            return {
                "patient_id": patient_id,
                "days_analyzed": days,
                "period_start": since,
                "period_end": current,
                "vitals": vitals,
                "adherence": adherence["overall"],
            }

        if db:
            return _summarize(db)

        with get_db_context() as session:
            return _summarize(session)


# Singleton instance
summary_service = HealthSummaryService()
