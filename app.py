"""
CameraRentals - Rental Booking Engine
Flask application factory and initialization
"""

import os
import sqlite3
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager

# Import database functions
from database import close_db, init_db, get_db

from utils.api_response import api_error
from utils.errors import BookingEngineError, NoPricingConfigured, NoTierForDuration


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = config[config_name]
    app.config.from_object(config_class)
    if hasattr(config_class, 'validate'):
        config_class.validate()

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    # Initialize Flask-Login
    login_manager.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.rentals import rentals_bp
    from blueprints.api.routes import api_bp

    # Register blueprints
    app.register_blueprint(rentals_bp, url_prefix='/rentals')
    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(BookingEngineError)
    def engine_error(error):
        """Map engine failures to the JSON error envelope."""
        if isinstance(error, (NoPricingConfigured, NoTierForDuration)):
            app.logger.error(f"Pricing data problem: {error.message}")
        else:
            app.logger.info(f"{error.code}: {error.message}")
        return api_error(error.message, status=error.status, **error.to_dict())

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error('Resource not found', status=404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return api_error('Method not allowed', status=405)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        return api_error('Internal server error', status=500)


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    @click.option('--seed/--no-seed', default=True, help='Insert demo users and inventory.')
    def init_db_command(seed):
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db(seed=seed)
        click.echo('Database initialized successfully!')

    @app.cli.command('seed-demo')
    def seed_demo_command():
        """Insert demo users and inventory into an empty database."""
        from database.seed import seed_database

        with app.app_context():
            db = get_db()
            try:
                seed_database(db)
                db.commit()
                click.echo('Demo data inserted.')
            except sqlite3.IntegrityError as e:
                db.rollback()
                click.echo(f'Error seeding demo data (already seeded?): {str(e)}', err=True)

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    @click.option('--full-name', default=None, help='Display name.')
    @click.option('--role', type=click.Choice(['customer', 'staff']), default='customer')
    def create_user_command(username, email, full_name, role):
        """Create a new user."""
        from models.user import create_user

        with app.app_context():
            try:
                user_id = create_user(
                    username=username,
                    email=email,
                    full_name=full_name,
                    role=role
                )
                click.echo(f'User created successfully! ID: {user_id}')
            except (ValueError, sqlite3.IntegrityError) as e:
                click.echo(f'Error creating user: {str(e)}', err=True)

    @app.cli.command('purge-rejected')
    def purge_rejected_command():
        """Delete rejected bookings whose retention window has passed."""
        from blueprints.rentals.services.lifecycle_service import purge_expired_rejections
        from utils.messages import get_message

        with app.app_context():
            removed = purge_expired_rejections()
        click.echo(get_message('rejections_purged', count=len(removed)))
        for record in removed:
            refs = [r for r in [record['contract_ref']] + record['receipt_refs'] if r]
            if refs:
                click.echo(f"  booking {record['id']}: {', '.join(refs)}")


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/rental_engine.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Module loggers (services, notifications) share the file handler
        for name in ('blueprints', 'utils'):
            module_logger = logging.getLogger(name)
            module_logger.addHandler(file_handler)
            module_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('CameraRentals startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger('blueprints').setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
