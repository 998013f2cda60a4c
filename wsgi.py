"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi progression-sweep
    gunicorn wsgi:app
"""

from ideaswipe import create_app

app = create_app()
