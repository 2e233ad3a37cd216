"""
asgi.py -- ASGI entry point for the SMS gateway auth service.

Run with:  uvicorn asgi:app --reload

Routers are registered in api/main.py; this module only re-exports the app
so process managers have a stable import path.
"""

from api.main import app

__all__ = ["app"]
