from flask import Blueprint, render_template, request, redirect, url_for, session, flash, g, current_app
from functools import wraps
from datetime import datetime
import logging

from models import IST
from payments.api import BackendClient
from payments.errors import BackendError

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')
logger = logging.getLogger(__name__)

AUTH_SESSION_KEYS = ('api_token', 'organizer', 'logged_in_at')


def backend_client():
    """Backend API client carrying the signed-in organizer's token."""
    token = session.get('api_token')
    factory = current_app.config.get('BACKEND_CLIENT_FACTORY')
    if factory is not None:
        return factory(token)
    return BackendClient.from_config(current_app.config, token=token)


# Helper function - load current organizer
def load_current_organizer():
    """Load organizer details into g.organizer for easy access"""
    if session.get('api_token'):
        g.organizer = session.get('organizer') or {}
    else:
        g.organizer = None


def require_organizer(f):
    """Require a signed-in organizer"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('organizer') is None:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login', next=request.path))
        return f(*args, **kwargs)
    return decorated_function


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Organizer login against the Backend API"""
    if request.method == 'POST':
        email = request.form.get('email', '').strip()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Email and password are required.', 'error')
            return render_template('auth/login.html', email=email)

        try:
            data = backend_client().login_organizer(email, password)
        except BackendError as exc:
            logger.info('Organizer login failed for %s: %s', email, exc.message)
            flash(exc.message or 'Invalid email or password.', 'error')
            return render_template('auth/login.html', email=email)

        organizer = data.get('organizer') or {}
        # Only auth keys are replaced; a pending registration must survive re-login.
        for key in AUTH_SESSION_KEYS:
            session.pop(key, None)
        session['api_token'] = data['accessToken']
        session['organizer'] = {
            'id': organizer.get('_id'),
            'name': organizer.get('name') or email,
            'email': organizer.get('email') or email,
        }
        session['logged_in_at'] = datetime.now(IST).isoformat()

        flash(f"Login successful! Welcome, {session['organizer']['name']}.", 'success')
        next_url = request.args.get('next')
        if next_url and next_url.startswith('/') and not next_url.startswith('//'):
            return redirect(next_url)
        return redirect(url_for('organizer.register_team'))

    return render_template('auth/login.html', email='')


@auth_bp.route('/logout')
def logout():
    """Logout organizer"""
    for key in AUTH_SESSION_KEYS:
        session.pop(key, None)
    flash('You have been logged out.', 'info')
    return redirect(url_for('auth.login'))
