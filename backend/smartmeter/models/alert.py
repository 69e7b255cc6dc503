import enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from smartmeter.database import Base
from smartmeter.models.reading import utcnow


class AlertKind(str, enum.Enum):
    POWER_SPIKE = "power_spike"


class AlertSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    device_id = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=False)
    kind = Column(String(50), nullable=False, default=AlertKind.POWER_SPIKE.value)
    severity = Column(String(20), nullable=False, default=AlertSeverity.HIGH.value)
    is_read = Column(Boolean, nullable=False, default=False)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, index=True, default=utcnow)

    # Snapshot of the detection that raised the alert
    current_power = Column(Float)
    average_power = Column(Float)
    threshold = Column(Float)

    @property
    def data(self):
        return {
            "current_power": self.current_power,
            "average_power": self.average_power,
            "threshold": self.threshold,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "device_id": self.device_id,
            "message": self.message,
            "kind": self.kind,
            "severity": self.severity,
            "is_read": bool(self.is_read),
            "is_resolved": bool(self.is_resolved),
            "metadata": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
