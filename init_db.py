"""
Database initialization script for deployment
Run with: python init_db.py
"""

import logging

from app import create_app
from models import db, ensure_schema_integrity

logger = logging.getLogger(__name__)


def initialize_database():
    """Create the payment ledger tables"""
    app = create_app()
    with app.app_context():
        logger.info("Creating database tables...")
        db.create_all()
        ensure_schema_integrity()
        logger.info("Database initialized successfully!")


if __name__ == "__main__":
    initialize_database()
