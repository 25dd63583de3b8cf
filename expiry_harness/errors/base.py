"""
Base error classes for the verification harness.

Harness errors never recover: the scenario exists to prove the engine
under test behaves, so any failure aborts the run with full context.
"""

from typing import Optional, Dict, Any


class HarnessError(Exception):
    """Base class for all scenario failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = False

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(HarnessError):
    """Scenario configuration failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
