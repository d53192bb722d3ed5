"""
CabinShare - Shared Cabin Reservation Management
Flask application factory: JSON API for booking the family cabin and
splitting stay costs between family groups.
"""

import os
import sqlite3
import logging

import click
from flask import Flask, g, jsonify
from dotenv import load_dotenv

load_dotenv()

from config import config
from extensions import login_manager, csrf
from database import close_db, init_db
from utils.api_response import api_error


def create_app(config_name=None):
    """
    Build the Flask app.

    Args:
        config_name: 'development', 'production' or 'test'
            (defaults to FLASK_ENV, then 'development')

    Returns:
        Flask application instance
    """
    config_name = config_name or os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    configure_logging(app)

    login_manager.init_app(app)
    csrf.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_cli_commands(app)

    app.teardown_appcontext(close_db)

    return app


def register_blueprints(app):
    """Mount the cabin API and the liveness probe."""
    from blueprints.cabin import cabin_bp

    app.register_blueprint(cabin_bp, url_prefix='/cabin')

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'ok',
            'app': app.config['APP_NAME'],
            'version': app.config['APP_VERSION'],
        })


def register_error_handlers(app):
    """Every error leaves the API as the standard JSON error body."""

    @app.errorhandler(403)
    def forbidden_error(error):
        return api_error('Forbidden', status=403, error_code='permission_denied')

    @app.errorhandler(404)
    def not_found_error(error):
        return api_error('Not found', status=404, error_code='not_found')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return api_error('Method not allowed', status=405)

    @app.errorhandler(sqlite3.OperationalError)
    def store_unavailable_error(error):
        # Locked or unreachable database; the client may retry
        app.logger.error(f'Database unavailable: {error}')
        _rollback()
        return api_error('Storage temporarily unavailable', status=503, error_code='store_error')

    @app.errorhandler(500)
    def internal_error(error):
        _rollback()
        return api_error('Internal server error', status=500)


def _rollback():
    db = g.get('db')
    if db is not None:
        db.rollback()


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Drop and recreate the schema with seed data."""
        click.echo('Initializing database...')
        init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-member')
    @click.argument('organization_id', type=int)
    @click.argument('username')
    @click.argument('family_group')
    @click.option('--role', default='member',
                  type=click.Choice(['admin', 'calendar_keeper', 'member']))
    @click.option('--email', default=None)
    def create_member_command(organization_id, username, family_group, role, email):
        """Add a member to a family group of an organization."""
        from models.member import create_member

        try:
            member_id = create_member(
                organization_id=organization_id,
                username=username,
                family_group=family_group,
                email=email,
                role=role
            )
        except ValueError as e:
            raise click.ClickException(f'Error creating member: {e}')

        click.echo(f'Member created successfully! ID: {member_id}')

    @app.cli.command('set-billing')
    @click.argument('organization_id', type=int)
    @click.argument('financial_method', type=click.Choice([
        'per_person_per_night', 'per_person_per_week', 'flat_rate_per_night', 'flat_rate_per_week'
    ]))
    @click.argument('nightly_rate', type=float)
    @click.option('--tax-rate', default=0.0, type=float, help='Percent, 0-100')
    @click.option('--cleaning-fee', default=0.0, type=float)
    @click.option('--season-end', default='10-31', help='MM-DD the season ends')
    @click.option('--due-offset', default=0, type=int, help='Days after season end payments are due')
    def set_billing_command(organization_id, financial_method, nightly_rate,
                            tax_rate, cleaning_fee, season_end, due_offset):
        """Set an organization's billing rate and payment deadline."""
        from models.reservation_settings import upsert_reservation_settings

        try:
            month, day = (int(part) for part in season_end.split('-'))
        except ValueError:
            raise click.BadParameter('expected MM-DD', param_hint='--season-end')

        try:
            upsert_reservation_settings(
                organization_id, financial_method, nightly_rate,
                tax_rate=tax_rate,
                cleaning_fee=cleaning_fee,
                season_end_month=month,
                season_end_day=day,
                season_payment_deadline_offset_days=due_offset
            )
        except ValueError as e:
            raise click.ClickException(f'Invalid billing settings: {e}')
        click.echo(f'Billing settings saved for organization {organization_id}')


def configure_logging(app):
    """
    Development and tests log DEBUG to the console; production logs INFO
    to LOG_FILE.
    """
    if app.debug or app.testing:
        app.logger.setLevel(logging.DEBUG)
        return

    log_file = app.config['LOG_FILE']
    os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]'
    ))
    file_handler.setLevel(logging.INFO)

    # Service modules log through their own module loggers
    for logger in (app.logger, logging.getLogger('models'),
                   logging.getLogger('blueprints'), logging.getLogger('database')):
        logger.addHandler(file_handler)
        logger.setLevel(logging.INFO)

    app.logger.info('CabinShare startup')


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', debug=True)
