import logging

from smartmeter.database import SessionLocal, Base, engine
from smartmeter.logging_config import setup_logging

# Import all models to ensure they are registered with SQLAlchemy
from smartmeter.models.user import User
from smartmeter.models.device import Device
from smartmeter.models import alert, reading  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(db=None):
    """Create all tables and seed a demo owner with one device on an empty database."""
    Base.metadata.create_all(bind=engine if db is None else db.get_bind())

    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    try:
        existing = db.query(Device).first()
        if existing is None:
            owner = User(name="Demo Owner", email="owner@example.com")
            db.add(owner)
            db.flush()
            db.add(Device(device_id="ESP32-001", name="Main Panel", owner_id=owner.id))
            db.commit()
            logger.info("Demo owner and device created")
        else:
            logger.info("Database already contains devices. Skipping seed.")

    except Exception:
        logger.exception("Error initializing database")
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()

if __name__ == "__main__":
    setup_logging()
    init_db()
