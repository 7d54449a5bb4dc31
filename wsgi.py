"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi seed-demo
    flask --app wsgi db init       # first time only (creates migrations/)
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
    gunicorn wsgi:app
"""

from workspace_hub import create_app

app = create_app()
