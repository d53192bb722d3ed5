"""
Cabin blueprint initialization.
Registers the reservation core JSON API.

Route logic lives in:
- routes/api/reservations.py - Conflict checks, validation, booking CRUD
- routes/api/occupancy.py - Daily occupancy and billing sync
- routes/api/splits.py - Cost splits between family groups
- routes/api/payments.py - Recording received payments
"""

from flask import Blueprint

# Create main cabin blueprint
cabin_bp = Blueprint('cabin', __name__)

# =============================================================================
# REGISTER SUB-BLUEPRINTS
# =============================================================================

# API routes (all REST endpoints)
from blueprints.cabin.routes.api import api_bp
cabin_bp.register_blueprint(api_bp, url_prefix='/api')
