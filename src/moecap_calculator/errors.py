from __future__ import annotations


class CalculatorError(Exception):
    """Base class for errors raised by the calculator."""


class ConfigurationError(CalculatorError):
    """Unknown architecture/device key or an invalid data file."""


class InvalidInput(CalculatorError):
    """A query parameter that no estimate can be computed for."""
