"""
asgi.py -- ASGI entry point for the session auth service.

The application is assembled in api/main.py; this module only re-exports it
under the name process managers expect.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
