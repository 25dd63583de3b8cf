"""
Scheduled action module.

Packages the scenario's single deferred entry order and registers it with
the engine's scheduler.
"""
