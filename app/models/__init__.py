# Smart Car Monitoring: database models
# Import all models here for SQLAlchemy discovery

from app.models.vehicle import Vehicle, VehicleStatus           # noqa
from app.models.telemetry import TelemetryReading               # noqa
from app.models.alert import Alert, AlertType, AlertSeverity    # noqa
