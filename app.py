from flask import Flask, render_template, redirect, url_for, g
import logging
import os

from models import db, ensure_schema_integrity
from payments.errors import PaymentFlowError
from blueprints.auth import auth_bp, load_current_organizer
from blueprints.organizer import organizer_bp
from blueprints.payments import payments_bp

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_timeout():
    value = os.environ.get('BACKEND_API_TIMEOUT')
    return float(value) if value else None


def configure_logging(app):
    level = app.config.get('LOG_LEVEL', 'INFO')
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'tourneypay')
    app.config['BACKEND_API_URL'] = os.environ.get('BACKEND_API_URL', 'http://localhost:8000/api/v1')
    app.config['BACKEND_API_TIMEOUT'] = _env_timeout()
    app.config['PAYMENT_PROVIDER'] = os.environ.get('PAYMENT_PROVIDER', 'phonepe')
    app.config['TREAT_UNVERIFIED_PAYMENT_AS_SUCCESS'] = _env_flag('TREAT_UNVERIFIED_PAYMENT_AS_SUCCESS', True)
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO').upper()
    # Tests swap in a fake Backend API client: callable(token) -> client
    app.config['BACKEND_CLIENT_FACTORY'] = None

    # The gateway sends the browser back with a top-level GET; Lax keeps the
    # session cookie (and the pending registration in it) on that request.
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_HTTPONLY'] = True

    # Database configuration - supports both local SQLite and remote PostgreSQL
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        # Heroku PostgreSQL URL fix (postgres:// → postgresql://)
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    else:
        default_sqlite_dir = os.path.join(BASE_DIR, 'instance')
        sqlite_path = os.environ.get('SQLITE_PATH', os.path.join(default_sqlite_dir, 'payments.db'))
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{sqlite_path}'

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    if test_config:
        app.config.update(test_config)

    configure_logging(app)

    db_uri = app.config['SQLALCHEMY_DATABASE_URI']
    if db_uri.startswith('sqlite:///') and db_uri != 'sqlite:///:memory:':
        os.makedirs(os.path.dirname(db_uri[len('sqlite:///'):]) or '.', exist_ok=True)

    db.init_app(app)

    with app.app_context():
        db.create_all()
        ensure_schema_integrity()
        app.logger.info('Database initialized successfully!')

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(organizer_bp)
    app.register_blueprint(payments_bp)

    @app.before_request
    def before_request():
        """Load the signed-in organizer before every request"""
        load_current_organizer()

    @app.errorhandler(PaymentFlowError)
    def handle_payment_flow_error(error):
        app.logger.warning('Unhandled %s: %s', error.kind, error.message)
        return render_template('error.html', error=error.message), error.status_code

    @app.errorhandler(404)
    def handle_404(error):
        return render_template('error.html', error='Page not found.'), 404

    @app.route('/')
    def index():
        if getattr(g, 'organizer', None):
            return redirect(url_for('organizer.register_team'))
        return redirect(url_for('auth.login'))

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5000)
