"""
Observer state machine and end-of-run invariants.

Tracks the option position life cycle NOT_YET_FILLED → OPENED → CLOSED
from the engine's event stream and checks the final portfolio.
"""
