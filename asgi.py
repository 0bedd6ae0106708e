"""
asgi.py -- ASGI entry point.

Run with:  uvicorn asgi:app --reload
           uvicorn asgi:app --host 0.0.0.0 --port 3000

api/main.py owns app construction; this module only exposes it under the
conventional name so the server command does not depend on package layout.
"""

from api.main import app

__all__ = ["app"]
