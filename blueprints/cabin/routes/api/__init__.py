"""
Cabin API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint

# Create the API blueprint
api_bp = Blueprint('api', __name__)

# Import and register routes from submodules
from blueprints.cabin.routes.api import reservations
from blueprints.cabin.routes.api import occupancy
from blueprints.cabin.routes.api import splits
from blueprints.cabin.routes.api import payments

# Register all route functions on the blueprint
reservations.register_routes(api_bp)
occupancy.register_routes(api_bp)
splits.register_routes(api_bp)
payments.register_routes(api_bp)
