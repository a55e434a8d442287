# clipvault: Database Models
# Import all models here for SQLAlchemy discovery

from clipvault.models.camera import Camera   # noqa
from clipvault.models.event import Event     # noqa
from clipvault.models.alert import Alert     # noqa
