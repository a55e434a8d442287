# clipvault/services/alert_service.py
"""
Shared alert creation service.
Alerts are the persistent trail of every notification the engine sends;
the notifier delivers them, this module records them.
"""

from datetime import datetime, timezone
from sqlalchemy.orm import Session
from clipvault.models.alert import Alert
from clipvault.utils.logger import get_logger

logger = get_logger(__name__)


def create_alerts(db: Session, alert_type: str, descriptions: dict):
    """Persist one alert per camera ({camera_id: description}) in a single commit."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    for camera_id, description in descriptions.items():
        db.add(Alert(alert_type=alert_type, camera_id=camera_id, description=description,
                     is_resolved=0, triggered_at=now))
    db.commit()
    for description in descriptions.values():
        logger.warning(f"[ALERT][{alert_type.upper()}] {description}")
