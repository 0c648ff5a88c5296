# wsgi.py
# Production entry points:
#   gunicorn wsgi:application
#   celery -A wsgi:celery worker -Q notifications
from app import create_app

application = create_app()
celery = application.celery
