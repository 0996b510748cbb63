"""
InfraMind Analysis Platform
Shared SQLAlchemy handle.

Usage:
    from inframind.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
