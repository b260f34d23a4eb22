"""api/ -- HTTP layer for StaffDesk.

Layer rule: api/ may import from auth/ and core/. Nothing imports from api/
except asgi.py and the tests.
"""
