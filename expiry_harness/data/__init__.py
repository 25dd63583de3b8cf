"""
Domain data models.

Immutable value types for instruments, option contracts, engine events
and holdings snapshots exchanged with the engine under test.
"""
