from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from clipvault.database import get_db
from clipvault.models.alert import Alert
from clipvault.schemas.alert import AlertOut
from typing import Optional

router = APIRouter()

@router.get("/alerts", response_model=list[AlertOut], summary="Engine alerts: filterable by type/camera")
def get_all_alerts(
    alert_type: Optional[str] = None,
    camera_id: Optional[str] = None,
    is_resolved: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Stale-camera notices and any other alert the engine records."""
    q = db.query(Alert)
    if alert_type:
        q = q.filter(Alert.alert_type == alert_type)
    if camera_id:
        q = q.filter(Alert.camera_id == camera_id)
    if is_resolved is not None:
        q = q.filter(Alert.is_resolved == is_resolved)
    return q.order_by(Alert.triggered_at.desc()).limit(limit).all()
