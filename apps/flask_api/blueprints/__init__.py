"""Flask API blueprints.

- health: liveness, DB check and version metadata
- discovery: run discovery / list discovery records
- insights: latest / forced insight snapshot
- events: interaction event capture
"""

from apps.flask_api.blueprints.discovery import discovery_bp
from apps.flask_api.blueprints.events import events_bp
from apps.flask_api.blueprints.health import health_bp
from apps.flask_api.blueprints.insights import insights_bp

__all__ = [
    "health_bp",
    "discovery_bp",
    "insights_bp",
    "events_bp",
]
