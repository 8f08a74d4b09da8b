"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-code-sequences
    gunicorn wsgi:app
"""

from obraqms import create_app

app = create_app()
