"""
ProFlow
Database instance shared by all models.

Usage:
    from proflow.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
