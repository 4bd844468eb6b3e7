"""Entrypoint used by Uvicorn and Gunicorn workers: `uvicorn app.main:app`"""

from app.app import get_application
from app.dependencies import get_settings

# Tests build their own application with mocked settings, this module is only imported by the server
app = get_application(settings=get_settings())
