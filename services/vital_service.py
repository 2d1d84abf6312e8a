"""
Vital Service
Vital-signs readings, per-patient thresholds and derived alerts
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from datetime import datetime, timedelta
from collections import defaultdict
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc
from sqlalchemy.exc import IntegrityError

from config import scheduling_config
from database import get_db_context
from errors import ConflictError, ValidationError
import models
from models import VitalParameter
from tools.schedule_generator import to_local_naive
from tools.threshold_evaluator import ThresholdEvaluator, VitalAlert, threshold_evaluator


logger = logging.getLogger(__name__)


PARAMETERS = [p.value for p in VitalParameter]


def coerce_parameter(value) -> VitalParameter:
    try:
        return VitalParameter(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(
            f"Unknown vital parameter '{value}'. Must be one of: {', '.join(PARAMETERS)}",
            field="parameter"
        )


class VitalService:
    """
    Service for vital-signs readings and threshold alerts
    """

    def __init__(self, evaluator: Optional[ThresholdEvaluator] = None):
        self.evaluator = evaluator or threshold_evaluator

    # ==================== READINGS ====================

    async def record_reading(
        self,
        patient_id: int,
        values: Dict[str, Optional[float]],
        recorded_by: int,
        recorded_by_role: str,
        notes: Optional[str] = None,
        recorded_at: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.VitalReading:
        """
        Store an immutable reading

        Args:
            patient_id: Patient ID
            values: Parameter name -> value; at least one must be present
            recorded_by: Recording user ID
            recorded_by_role: Recording user role
            notes: Free-text notes
            recorded_at: Measurement time, defaults to now
            db: Database session

        Returns:
            Created VitalReading
        """
        present = {k: v for k, v in values.items() if v is not None}
        unknown = set(present) - set(PARAMETERS)
        if unknown:
            raise ValidationError(f"Unknown vital parameter(s): {', '.join(sorted(unknown))}", field="parameter")
        if not present:
            raise ValidationError("At least one vital parameter is required")

        def _record(session: Session) -> models.VitalReading:
            reading = models.VitalReading(
                patient_id=patient_id,
                recorded_by=recorded_by,
                recorded_by_role=recorded_by_role,
                notes=notes,
                recorded_at=to_local_naive(recorded_at) or datetime.now(),
                **present
            )
            session.add(reading)
            session.commit()
            session.refresh(reading)

            logger.info(
                f"Recorded vitals {reading.id} for patient {patient_id} "
                f"({', '.join(sorted(present))})"
            )
            return reading

        if db:
            return _record(db)

        with get_db_context() as session:
            return _record(session)

    def evaluate_reading_sync(self, session: Session, reading_id: int) -> List[VitalAlert]:
        reading = session.query(models.VitalReading).filter(
            models.VitalReading.id == reading_id
        ).first()
        if not reading:
            return []
        thresholds = session.query(models.VitalThreshold).filter(
            models.VitalThreshold.patient_id == reading.patient_id
        ).all()
        alerts = self.evaluator.evaluate(reading, thresholds)
        for alert in alerts:
            log = logger.warning if alert.is_critical else logger.info
            log(f"Vital alert for patient {alert.patient_id}: {alert.describe()}")
        return alerts

    def evaluate_reading_background(self, reading_id: int) -> None:
        """
        Post-ingestion evaluation run as a background task. Failures are
        logged and never reach the caller that stored the reading.
        """
        try:
            with get_db_context() as session:
                self.evaluate_reading_sync(session, reading_id)
        except Exception:
            logger.exception(f"Threshold evaluation failed for reading {reading_id}")

    async def list_readings(
        self,
        patient_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
        db: Optional[Session] = None
    ) -> Tuple[List[models.VitalReading], int]:
        start, end = to_local_naive(start), to_local_naive(end)

        def _list(session: Session) -> Tuple[List[models.VitalReading], int]:
            query = session.query(models.VitalReading).filter(
                models.VitalReading.patient_id == patient_id
            )
            if start is not None:
                query = query.filter(models.VitalReading.recorded_at >= start)
            if end is not None:
                query = query.filter(models.VitalReading.recorded_at <= end)
            total = query.count()
            rows = query.order_by(
                desc(models.VitalReading.recorded_at), desc(models.VitalReading.id)
            ).offset(offset).limit(limit).all()
            return rows, total

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def get_trends(
        self,
        patient_id: int,
        parameter,
        days: int = 30,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Daily aggregates for one parameter

        Returns:
            {"parameter", "days", "points": [{date, average, min, max, count}]}
        """
        parameter = coerce_parameter(parameter)

        def _trends(session: Session) -> Dict[str, Any]:
            since = (now or datetime.now()) - timedelta(days=days)
            column = getattr(models.VitalReading, parameter.value)
            rows = session.query(models.VitalReading.recorded_at, column).filter(
                and_(
                    models.VitalReading.patient_id == patient_id,
                    models.VitalReading.recorded_at >= since,
                    column.isnot(None)
                )
            ).all()

            by_day: Dict[str, List[float]] = defaultdict(list)
            for recorded_at, value in rows:
                by_day[recorded_at.date().isoformat()].append(value)

            points = [
                {
                    "date": day,
                    "average": round(sum(values) / len(values), 2),
                    "min": min(values),
                    "max": max(values),
                    "count": len(values),
                }
                for day, values in sorted(by_day.items())
            ]
            return {"parameter": parameter.value, "days": days, "points": points}

        if db:
            return _trends(db)

        with get_db_context() as session:
            return _trends(session)

    def sync_vital_stats(self, session: Session, patient_id: int, since: datetime) -> Dict[str, Any]:
        """Per-parameter averages and the latest measurement time since `since`"""
        rows = session.query(models.VitalReading).filter(
            and_(
                models.VitalReading.patient_id == patient_id,
                models.VitalReading.recorded_at >= since
            )
        ).all()

        averages: Dict[str, Optional[float]] = {}
        for parameter in PARAMETERS:
            values = [getattr(r, parameter) for r in rows if getattr(r, parameter) is not None]
            averages[parameter] = round(sum(values) / len(values), 2) if values else None

        return {
            "reading_count": len(rows),
            "last_recorded": max((r.recorded_at for r in rows), default=None),
            "averages": averages,
        }

    # ==================== THRESHOLDS ====================

    async def upsert_threshold(
        self,
        patient_id: int,
        parameter,
        min_value: Optional[float],
        max_value: Optional[float],
        is_critical: bool = False,
        set_by: Optional[int] = None,
        db: Optional[Session] = None
    ) -> models.VitalThreshold:
        """One threshold per (patient, parameter); a later upsert replaces the bounds"""
        parameter = coerce_parameter(parameter)
        if min_value is None and max_value is None:
            raise ValidationError("At least one of min_value or max_value is required", field="min_value")
        if min_value is not None and max_value is not None and min_value > max_value:
            raise ValidationError("min_value must not exceed max_value", field="min_value")

        def _upsert(session: Session) -> models.VitalThreshold:
            threshold = session.query(models.VitalThreshold).filter(
                and_(
                    models.VitalThreshold.patient_id == patient_id,
                    models.VitalThreshold.parameter == parameter
                )
            ).first()
            if threshold is None:
                threshold = models.VitalThreshold(patient_id=patient_id, parameter=parameter)
                session.add(threshold)

            threshold.min_value = min_value
            threshold.max_value = max_value
            threshold.is_critical = is_critical
            threshold.set_by = set_by
            threshold.updated_at = datetime.utcnow()

            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError(
                    f"Threshold for {parameter.value} was modified concurrently",
                    field="parameter"
                )
            session.refresh(threshold)
            logger.info(
                f"Threshold {parameter.value} for patient {patient_id} set to "
                f"[{min_value}, {max_value}] critical={is_critical}"
            )
            return threshold

        if db:
            return _upsert(db)

        with get_db_context() as session:
            return _upsert(session)

    async def list_thresholds(
        self,
        patient_id: int,
        db: Optional[Session] = None
    ) -> List[models.VitalThreshold]:
        def _list(session: Session) -> List[models.VitalThreshold]:
            return session.query(models.VitalThreshold).filter(
                models.VitalThreshold.patient_id == patient_id
            ).order_by(models.VitalThreshold.parameter).all()

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    # ==================== ALERTS ====================

    def sync_alerts(
        self,
        session: Session,
        since: datetime,
        patient_id: Optional[int] = None
    ) -> List[VitalAlert]:
        """Alerts derived from readings recorded at or after `since`"""
        readings = session.query(models.VitalReading).filter(
            models.VitalReading.recorded_at >= since
        )
        thresholds = session.query(models.VitalThreshold)
        if patient_id is not None:
            readings = readings.filter(models.VitalReading.patient_id == patient_id)
            thresholds = thresholds.filter(models.VitalThreshold.patient_id == patient_id)

        by_patient: Dict[int, List[models.VitalThreshold]] = defaultdict(list)
        for threshold in thresholds.all():
            by_patient[threshold.patient_id].append(threshold)

        alerts: List[VitalAlert] = []
        for reading in readings.all():
            alerts.extend(self.evaluator.evaluate(reading, by_patient.get(reading.patient_id, [])))
        return sorted(alerts, key=lambda a: a.recorded_at, reverse=True)

    async def get_alerts(
        self,
        patient_id: int,
        days: int = scheduling_config.ALERT_LOOKBACK_DAYS,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[VitalAlert]:
        def _get(session: Session) -> List[VitalAlert]:
            since = (now or datetime.now()) - timedelta(days=days)
            return self.sync_alerts(session, since, patient_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


# Singleton instance
vital_service = VitalService()
