from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from smartmeter.database import get_db
from smartmeter.exceptions import StorageUnavailable
from smartmeter.services.stores import SqlAlertStore

router = APIRouter()


@router.get("/alerts")
def list_alerts(
    owner_id: Optional[int] = Query(None),
    device_id: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None),
    is_resolved: Optional[bool] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """List alerts newest first, optionally filtered by owner, device and flags."""
    try:
        alerts, total = SqlAlertStore(db).page(
            owner_id=owner_id,
            device_id=device_id,
            is_read=is_read,
            is_resolved=is_resolved,
            limit=limit,
            page=page,
        )
    except StorageUnavailable:
        raise HTTPException(status_code=500, detail="Server error")
    return {
        "success": True,
        "count": len(alerts),
        "total": total,
        "alerts": [a.to_dict() for a in alerts],
    }


def _set_flag(db: Session, alert_id: int, **flags):
    store = SqlAlertStore(db)
    try:
        alert = store.get(alert_id)
        if alert is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        alert = store.update_flags(alert, **flags)
    except StorageUnavailable:
        raise HTTPException(status_code=500, detail="Server error")
    return {"success": True, "alert": alert.to_dict()}


@router.patch("/alerts/{alert_id}/read")
def mark_alert_read(alert_id: int, db: Session = Depends(get_db)):
    return _set_flag(db, alert_id, is_read=True)


@router.patch("/alerts/{alert_id}/resolve")
def resolve_alert(alert_id: int, db: Session = Depends(get_db)):
    return _set_flag(db, alert_id, is_resolved=True)
