from datetime import datetime, timezone

from sqlalchemy import Column, Float, String, DateTime, Integer, ForeignKey
from smartmeter.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class EnergyReading(Base):
    __tablename__ = "energy_readings"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String(100), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    current = Column(Float, nullable=False)  # amperes
    voltage = Column(Float, nullable=False)  # volts
    temperature = Column(Float, nullable=False)  # celsius
    power = Column(Float, nullable=False)  # watts, current * voltage
    captured_at = Column(DateTime, nullable=False, index=True, default=utcnow)

    @classmethod
    def from_sample(cls, device_id, owner_id, current, voltage, temperature):
        return cls(
            device_id=device_id,
            owner_id=owner_id,
            current=current,
            voltage=voltage,
            temperature=temperature,
            power=current * voltage,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "device_id": self.device_id,
            "owner_id": self.owner_id,
            "current": self.current,
            "voltage": self.voltage,
            "temperature": self.temperature,
            "power": self.power,
            "captured_at": self.captured_at.isoformat() if self.captured_at else None,
        }
