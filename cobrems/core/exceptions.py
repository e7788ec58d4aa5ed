"""
Error taxonomy for cobrems.

Invalid configuration and invalid kinematics are caller mistakes and derive
from ``ValueError``; numerical failures derive from ``RuntimeError`` so that
callers can tell them apart and decide whether to retry with a relaxed
tolerance.
"""


class CobremsError(Exception):
    """Base class for all cobrems errors."""


class InvalidConfigurationError(CobremsError, ValueError):
    """Beamline, crystal or orientation parameters are out of range."""


class InvalidKinematicsError(CobremsError, ValueError):
    """Photon energy fraction, angle or energy outside the physical domain."""


class ConvergenceError(CobremsError, RuntimeError):
    """A numerical procedure failed to reach its prescribed accuracy."""


class CoherentEdgeError(ConvergenceError):
    """No crystal orientation places the coherent edge at the requested energy."""


class LatticeSumConvergenceError(ConvergenceError):
    """The reciprocal-lattice sum did not converge within the shell cutoff."""

    def __init__(self, message: str, record=None):
        super().__init__(message)
        self.record = record


class NumericalGuardError(CobremsError, ArithmeticError):
    """A ratio was requested whose denominator vanishes."""
