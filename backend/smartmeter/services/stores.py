"""Storage collaborators used by the spike alerting pipeline.

Each store wraps a SQLAlchemy session and turns driver errors into
``StorageUnavailable`` so callers handle one failure type.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from smartmeter.exceptions import StorageUnavailable
from smartmeter.models.alert import Alert
from smartmeter.models.reading import EnergyReading, utcnow
from smartmeter.models.user import User

logger = logging.getLogger(__name__)


class SqlReadingStore:
    def __init__(self, db: Session):
        self.db = db

    def _newest_first(self, device_id: str):
        return (
            self.db.query(EnergyReading)
            .filter(EnergyReading.device_id == device_id)
            .order_by(EnergyReading.captured_at.desc(), EnergyReading.id.desc())
        )

    def recent_readings(self, device_id: str, limit: int, exclude_id: Optional[int] = None) -> List[EnergyReading]:
        """Return up to ``limit`` readings for a device, newest first."""
        try:
            query = self._newest_first(device_id)
            if exclude_id is not None:
                query = query.filter(EnergyReading.id != exclude_id)
            return query.limit(limit).all()
        except SQLAlchemyError as e:
            logger.error("Reading query failed for %s: %s", device_id, e)
            raise StorageUnavailable() from e

    def page(self, device_id: str, limit: int = 100, page: int = 1) -> Tuple[List[EnergyReading], int]:
        skip = (page - 1) * limit
        try:
            readings = self._newest_first(device_id).offset(skip).limit(limit).all()
            total = self.db.query(EnergyReading).filter(EnergyReading.device_id == device_id).count()
        except SQLAlchemyError as e:
            logger.error("Reading page query failed for %s: %s", device_id, e)
            raise StorageUnavailable() from e
        return readings, total

    def insert(self, reading: EnergyReading) -> EnergyReading:
        if reading.captured_at is None:
            reading.captured_at = utcnow()
        try:
            self.db.add(reading)
            self.db.commit()
            self.db.refresh(reading)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Reading insert failed for %s: %s", reading.device_id, e)
            raise StorageUnavailable() from e
        return reading


class SqlAlertStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, alert: Alert) -> Alert:
        try:
            self.db.add(alert)
            self.db.commit()
            self.db.refresh(alert)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Alert insert failed for %s: %s", alert.device_id, e)
            raise StorageUnavailable() from e
        return alert

    def get(self, alert_id: int) -> Optional[Alert]:
        try:
            return self.db.get(Alert, alert_id)
        except SQLAlchemyError as e:
            raise StorageUnavailable() from e

    def page(
        self,
        owner_id: Optional[int] = None,
        device_id: Optional[str] = None,
        is_read: Optional[bool] = None,
        is_resolved: Optional[bool] = None,
        limit: int = 20,
        page: int = 1,
    ) -> Tuple[List[Alert], int]:
        query = self.db.query(Alert)
        if owner_id is not None:
            query = query.filter(Alert.owner_id == owner_id)
        if device_id is not None:
            query = query.filter(Alert.device_id == device_id)
        if is_read is not None:
            query = query.filter(Alert.is_read == is_read)
        if is_resolved is not None:
            query = query.filter(Alert.is_resolved == is_resolved)
        try:
            total = query.count()
            alerts = (
                query.order_by(Alert.created_at.desc(), Alert.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageUnavailable() from e
        return alerts, total

    def update_flags(self, alert: Alert, **flags) -> Alert:
        for name, value in flags.items():
            setattr(alert, name, value)
        try:
            self.db.commit()
            self.db.refresh(alert)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageUnavailable() from e
        return alert


class SqlUserDirectory:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[User]:
        try:
            return self.db.get(User, user_id)
        except SQLAlchemyError as e:
            raise StorageUnavailable() from e
