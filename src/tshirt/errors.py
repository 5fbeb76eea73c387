"""Status codes and exceptions for the Tshirt model.

Configuration problems are raised as exceptions at construction time.
Per-step outcomes are reported through ErrorCode so callers can branch on
them without exception handling in the time loop.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Outcome of a timestep or a mass-balance check."""

    NO_ERROR = 0
    CONFIGURATION_ERROR = 10
    NUMERICAL_ERROR = 20
    MASS_BALANCE_ERROR = 100

    @property
    def ok(self) -> bool:
        """True for NO_ERROR."""
        return self is ErrorCode.NO_ERROR


class TshirtError(Exception):
    """Base class for Tshirt model errors.

    Every subclass sets `code` to the failure status it maps to.
    """

    code: ErrorCode


class ConfigurationError(TshirtError, ValueError):
    """A parameter, state or collaborator violates its domain."""

    code = ErrorCode.CONFIGURATION_ERROR


class NumericalError(TshirtError, ArithmeticError):
    """A timestep produced non-finite fluxes or storages."""

    code = ErrorCode.NUMERICAL_ERROR
