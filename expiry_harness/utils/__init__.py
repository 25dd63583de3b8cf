"""
Utility functions module.

Time Semantics:
- Engine (simulated) timestamps are ALWAYS authoritative
- All timestamps are naive exchange-local datetimes, as the engine reports them
- Calendar-day expectations compare against midnight of that day
"""
