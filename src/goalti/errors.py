"""Error types raised by goalti.

Only caller errors (bad registrations, bad configuration) are raised.
Failures that happen while a goal is being evaluated degrade to an absent
result inside the engine and are logged instead.
"""

from __future__ import annotations


class InferenceError(Exception):
    """Base class for goalti errors."""


class RegistrationError(InferenceError, ValueError):
    """An evaluator registration was rejected."""


class ConfigError(InferenceError, ValueError):
    """A configuration value could not be parsed or is out of range."""
