"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db init        # once, creates migrations/
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from proflow import create_app

app = create_app()
