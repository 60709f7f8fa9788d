import importlib
import logging
import os
import click
from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from flask_security import Security, SQLAlchemyUserDatastore

from docketwise.config import CONFIG_BY_NAME, DevConfig
from docketwise.extensions import db, mail, limiter

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# (module, url prefix)
BLUEPRINTS = [
    ('auth', '/api/auth'),
    ('admin', '/api/admin'),
    ('dashboard', '/api/dashboard'),
    ('builder', '/api'),
    ('contractor', '/api'),
    ('docket', '/api'),
    ('weekly', '/api'),
    ('worker', '/api'),
    ('invoice', '/api'),
    ('history', '/api'),
]


def _configure_logging(app):
    logs_dir = app.config.get('LOGS_DIR')
    handlers = [logging.StreamHandler()]
    if logs_dir and not app.config.get('TESTING'):
        os.makedirs(logs_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(logs_dir, 'app.log')))
    logging.basicConfig(
        level=logging.DEBUG if app.config.get('DEBUG') else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        handlers=handlers,
    )


def _register_blueprints(app):
    for blueprint_name, prefix in BLUEPRINTS:
        module = importlib.import_module(f'docketwise.api.{blueprint_name}')
        blueprint = getattr(module, f'{blueprint_name}_bp')
        app.register_blueprint(blueprint, url_prefix=prefix)
        logger.info(f"Registered blueprint: {blueprint_name} with prefix: {prefix}")


def _register_request_logging(app):
    @app.before_request
    def log_request_info():
        logger.debug(f"Request: {request.method} {request.url}")

    @app.after_request
    def log_response_info(response):
        logger.debug(f"Response: {response.status_code}")
        if response.status_code >= 400:
            logger.error(f"Error response: {response.status_code} for {request.method} {request.url}")
            if response.is_json:
                logger.error(f"Response data: {response.get_json(silent=True)}")
        return response


def _register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(error):
        logger.error(f"400 Bad Request for {request.method} {request.url}")
        return jsonify({'error': 'Bad Request', 'message': str(error), 'path': request.path}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        logger.error(f"401 Unauthorized for {request.method} {request.url}")
        return jsonify({'error': 'Authentication required'}), 401

    @app.errorhandler(403)
    def forbidden(error):
        logger.error(f"403 Forbidden for {request.method} {request.url}")
        return jsonify({'error': 'Access forbidden'}), 403

    @app.errorhandler(404)
    def not_found(error):
        logger.error(f"404 error for path: {request.path}")
        if request.path.startswith('/api/'):
            return jsonify({'error': 'API endpoint not found', 'path': request.path}), 404
        return jsonify({'error': 'Page not found', 'path': request.path}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'path': request.path}), 405

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(e):
        logger.warning(f"Rate limit exceeded for {request.method} {request.url}")
        return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled exception for {request.method} {request.url}: {error}", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500


def _register_commands(app):
    from docketwise.seed_data import seed_roles, create_admin
    from docketwise.services.auth_service import AuthService
    from docketwise.services.contractor_service import ContractorService

    @app.cli.command('seed-roles')
    def seed_roles_command():
        """Create the admin, supervisor and worker roles."""
        created = seed_roles()
        click.echo(f"Roles ready ({created} created)")

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('password')
    @click.option('--name', default=None)
    def create_admin_command(email, password, name):
        """Create an admin account with a verified email."""
        user = create_admin(email, password, name)
        click.echo(f"Admin ready: {user.email}")

    @app.cli.command('encrypt-bank-data')
    def encrypt_bank_data_command():
        """Encrypt contractor bank details still stored as plaintext."""
        result = ContractorService.encrypt_existing_bank_data()
        click.echo(f"Encrypted {result['encrypted']} value(s), skipped {result['skipped']}")

    @app.cli.command('cleanup-tokens')
    def cleanup_tokens_command():
        """Delete expired verification and password reset tokens."""
        count = AuthService.cleanup_expired_tokens()
        click.echo(f"Removed {count} expired token(s)")


def create_app(config_class=None):
    if config_class is None:
        config_class = CONFIG_BY_NAME.get(os.environ.get('FLASK_CONFIG', 'dev'), DevConfig)

    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app)

    db.init_app(app)
    mail.init_app(app)
    limiter.init_app(app)
    CORS(app, supports_credentials=True, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    # models must be imported before the datastore is built
    from docketwise.models import User, Role
    user_datastore = SQLAlchemyUserDatastore(db, User, Role)
    Security(app, user_datastore, register_blueprint=False)
    logger.info("Flask-Security initialized successfully")

    _register_blueprints(app)
    _register_request_logging(app)
    _register_error_handlers(app)
    _register_commands(app)

    @app.route('/api/health-check')
    def health_check():
        return jsonify({'status': 'ok', 'database': db.health_check(), 'pool': db.get_pool_stats()})

    logger.info("Database connected: %s",
                "sqlite" if "sqlite" in (app.config.get("SQLALCHEMY_DATABASE_URI") or "") else "non-sqlite")
    return app


if __name__ == '__main__':
    application = create_app()
    application.run(host=application.config.get('FLASK_HOST', '0.0.0.0'),
                    port=application.config.get('FLASK_PORT', 5000),
                    debug=application.config.get('DEBUG', False))
