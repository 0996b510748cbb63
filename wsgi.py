"""Flask-Migrate / Alembic entry point. Usage: flask --app wsgi db upgrade"""

from inframind import create_app

app = create_app()
