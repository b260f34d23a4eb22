"""core/ -- Kernel layer for StaffDesk (configuration).

Layer rule: core/ imports only stdlib + third-party libraries.
It does NOT import from api/ or auth/.
"""
