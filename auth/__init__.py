"""auth/ -- Identity and access control package for StaffDesk.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration arrives as an explicit
auth.models.AuthConfig built by the application at startup.
api/ imports from auth/, not the other way around.
"""
