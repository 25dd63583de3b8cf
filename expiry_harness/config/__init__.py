"""
Scenario configuration.

Defaults describe the SPX put OTM expiry scenario; scenarios.yaml and
per-run overrides are merged on top and validated before a run starts.
"""
