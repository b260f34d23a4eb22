"""
asgi.py -- Application assembly for StaffDesk.

Entry point for the ASGI server. Business-entity routers (attendance, tasks,
leave, ...) are included on this app and protect their routes with the
dependencies in auth/dependencies.py; api/main.py stays limited to identity
and access endpoints.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
