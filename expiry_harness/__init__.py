"""
Expiry Harness - Index Option OTM Expiry Verification

A deterministic verification harness for the life cycle of an index option
contract inside an event-driven backtesting engine. Checks contract
selection, delisting notice timing, the absence of exercise for an
out-of-the-money contract, and a flat portfolio at the end of the run.
"""

__version__ = "0.1.0"
__author__ = "Expiry Harness Team"
