from sqlalchemy import Column, Integer, String
from smartmeter.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), index=True)
    push_token = Column(String(512))  # FCM registration token

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "has_push_token": bool(self.push_token),
        }
