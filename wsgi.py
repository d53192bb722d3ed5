"""WSGI entry point for production deployment."""
import os
from app import create_app
from config import ProductionConfig

env = os.environ.get('FLASK_ENV', 'production')
if env == 'production':
    ProductionConfig.validate()

application = create_app(env)
