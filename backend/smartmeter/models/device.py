from sqlalchemy import Column, Integer, String, ForeignKey
from smartmeter.database import Base


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String(100), unique=True, index=True, nullable=False)  # e.g., "ESP32-001"
    name = Column(String(255))
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @property
    def display_name(self):
        return self.name or self.device_id

    def to_dict(self):
        return {
            "id": self.id,
            "device_id": self.device_id,
            "name": self.name,
            "owner_id": self.owner_id,
        }
