"""Shared constants, errors and logging setup."""
from shared.diagnostics import setup_logging
from shared.errors import FetchError, InvalidCoordinateError

__all__ = [
    'FetchError',
    'InvalidCoordinateError',
    'setup_logging',
]
