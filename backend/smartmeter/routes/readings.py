import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from smartmeter.config import settings
from smartmeter.database import get_db
from smartmeter.exceptions import StorageUnavailable
from smartmeter.models.device import Device
from smartmeter.models.reading import EnergyReading
from smartmeter.schemas import ReadingPayload
from smartmeter.services.alert_recorder import AlertRecorder
from smartmeter.services.cache import get_cache, invalidate_prefix, set_cache
from smartmeter.services.notifications import Notifier, build_gateway
from smartmeter.services.pipeline import (
    CeleryNotificationDispatcher,
    InlineNotificationDispatcher,
    SpikeAlertPipeline,
)
from smartmeter.services.spike_detection import SpikeDetector
from smartmeter.services.stores import SqlAlertStore, SqlReadingStore, SqlUserDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


def get_dispatcher(db: Session = Depends(get_db)):
    if settings.notification_mode == "inline":
        return InlineNotificationDispatcher(Notifier(SqlUserDirectory(db), build_gateway(settings)))
    return CeleryNotificationDispatcher()


def get_pipeline(db: Session = Depends(get_db), dispatcher=Depends(get_dispatcher)):
    detector = SpikeDetector(
        SqlReadingStore(db),
        window=settings.spike_window,
        min_history=settings.spike_min_history,
        ratio=settings.spike_ratio,
    )
    return SpikeAlertPipeline(detector, AlertRecorder(SqlAlertStore(db)), dispatcher)


@router.post("/energy/add", status_code=201)
def add_energy_reading(
    payload: ReadingPayload,
    db: Session = Depends(get_db),
    pipeline: SpikeAlertPipeline = Depends(get_pipeline),
):
    """Store a sample pushed by a device, then check it for a power spike."""
    try:
        device = db.query(Device).filter(Device.device_id == payload.device_id).first()
    except SQLAlchemyError as e:
        logger.error("Device lookup failed for %s: %s", payload.device_id, e)
        raise HTTPException(status_code=500, detail="Server error")
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")

    reading = EnergyReading.from_sample(
        device.device_id,
        device.owner_id,
        payload.current,
        payload.voltage,
        payload.temperature,
    )
    try:
        reading = SqlReadingStore(db).insert(reading)
    except StorageUnavailable:
        raise HTTPException(status_code=500, detail="Server error")

    # The response does not depend on the outcome of the spike check
    pipeline.run(reading, device_name=device.display_name)
    invalidate_prefix(f"energy:device:{device.device_id}:")

    return {"success": True, "reading": reading.to_dict()}


@router.get("/energy/{device_id}")
def get_energy_readings(
    device_id: str,
    limit: int = Query(100, ge=1, le=1000),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    cache_key = f"energy:device:{device_id}:{limit}:{page}"
    data = get_cache(cache_key)
    if data is not None:
        return data
    try:
        readings, total = SqlReadingStore(db).page(device_id, limit=limit, page=page)
    except StorageUnavailable:
        raise HTTPException(status_code=500, detail="Server error")
    out = {
        "success": True,
        "count": len(readings),
        "total": total,
        "readings": [r.to_dict() for r in readings],
    }
    set_cache(cache_key, out, ex=30)  # cache for 30s
    return out
