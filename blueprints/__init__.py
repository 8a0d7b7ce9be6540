"""
Blueprints package for the TourneyPay front-end
Contains route blueprints for organizer login, team registration and payments
"""

from .auth import auth_bp
from .organizer import organizer_bp
from .payments import payments_bp

__all__ = ['auth_bp', 'organizer_bp', 'payments_bp']
