"""
Closed-form bremsstrahlung kernels.

All functions here are pure and vectorized. Kinematics use the reduced
photon angle u = theta * E / m_e and y = 1 - x. For a photon of energy
fraction x emitted at reduced angle u the longitudinal momentum transferred
to the target is

    q_L = delta(x) * (1 + u^2),   delta(x) = m_e^2 x / (2 E (1 - x))

The angular shape of the (screened, high-energy) Bethe-Heitler spectrum,

    F(x, u^2) = (1 + y^2) / (1 + u^2)^2 - 4 y u^2 / (1 + u^2)^4,

integrates over u^2 to 1 + y^2 - 2y/3 = (4/3)(1 - x) + x^2, the
complete-screening spectrum, so the incoherent rate per unit u^2 is the
complete-screening rate times F.
"""

from typing import Tuple, Union

import numpy as np

from cobrems.core.constants import ME
from cobrems.core.exceptions import InvalidKinematicsError

ArrayLike = Union[float, np.ndarray]


def check_x(x: ArrayLike) -> None:
    """Raise InvalidKinematicsError unless every x lies in (0, 1)."""
    x = np.asarray(x)
    if np.any(~np.isfinite(x)) or np.any(x <= 0) or np.any(x >= 1):
        raise InvalidKinematicsError(f"Photon energy fraction x must lie in (0, 1), got {x}")


def check_theta2(theta2: ArrayLike) -> None:
    """Raise InvalidKinematicsError for negative or non-finite theta^2."""
    theta2 = np.asarray(theta2)
    if np.any(~np.isfinite(theta2)) or np.any(theta2 < 0):
        raise InvalidKinematicsError(f"theta2 must be non-negative, got {theta2}")


def min_momentum_transfer(x: ArrayLike, energy: float) -> ArrayLike:
    """delta(x) = m_e^2 x / (2 E (1 - x)) in GeV."""
    return ME**2 * x / (2 * energy * (1 - x))


def edge_fraction(q_long: float, energy: float) -> float:
    """
    Energy fraction at which a reciprocal vector with longitudinal component
    ``q_long`` GeV has its coherent edge (inverse of ``min_momentum_transfer``).
    """
    ratio = 2 * energy * q_long / ME**2
    return ratio / (1 + ratio)


def reduced_angle2(theta2: ArrayLike, energy: float) -> ArrayLike:
    """u^2 = theta^2 (E / m_e)^2."""
    return theta2 * (energy / ME) ** 2


def angular_shape(x: ArrayLike, u2: ArrayLike) -> ArrayLike:
    """Unpolarized Bethe-Heitler angular shape F(x, u^2)."""
    y = 1 - x
    v = 1 / (1 + u2)
    return (1 + y**2) * v**2 - 4 * y * u2 * v**4


def polarized_shape(x: ArrayLike, u2: ArrayLike) -> ArrayLike:
    """
    Linearly polarized part of the coherent angular shape,

        2 y (1 - u^2)^2 / (1 + u^2)^4 = 2 y [1/(1+u^2)^2 - 4 u^2/(1+u^2)^4]

    The difference to ``angular_shape`` is ((1-y)^2 + 4 y u^2/(1+u^2)^2)/(1+u^2)^2
    >= 0, so the degree of polarization stays in [0, 1]. It reaches
    2y / (1 + y^2) at u = 0 and vanishes at u = 1.
    """
    y = 1 - x
    return 2 * y * (1 - u2) ** 2 / (1 + u2) ** 4


def polarization_components(
    x: ArrayLike, u2: ArrayLike, phi: ArrayLike
) -> Tuple[ArrayLike, ArrayLike]:
    """
    Split F(x, u^2) by the photon's linear polarization.

    ``phi`` is the angle between the emission plane and the reference plane.
    A photon polarized at angle psi to the emission plane has weight

        x^2 / (2 (1+u^2)^2) + y [1/(1+u^2)^2 - 4 u^2 cos^2(psi) / (1+u^2)^4]

    and the two returned components (psi = phi and psi = phi + pi/2) sum to F.

    Returns
    -------
    para, ortho : float or array
        Components parallel and orthogonal to the reference plane
    """
    y = 1 - x
    v = 1 / (1 + u2)
    common = 0.5 * x**2 * v**2 + y * v**2
    modulation = 4 * y * u2 * v**4
    para = common - modulation * np.cos(phi) ** 2
    ortho = common - modulation * np.sin(phi) ** 2
    return para, ortho


def complete_screening_spectrum(x: ArrayLike) -> ArrayLike:
    """x dN/dx per radiation length: (4/3)(1 - x) + x^2."""
    return 4 / 3 * (1 - x) + x**2


# Gauss-Legendre rule on t = u^2 / (1 + u^2) in [0, 1] for angular integrals
_GL_NODES, _GL_WEIGHTS = np.polynomial.legendre.leggauss(128)
T_NODES = 0.5 * (_GL_NODES + 1)
T_WEIGHTS = 0.5 * _GL_WEIGHTS


def angular_integrand_t(x: float, t: np.ndarray) -> np.ndarray:
    """
    F(x, u^2) du^2 expressed in t = u^2/(1+u^2).

    With du^2 = dt / (1-t)^2 the integrand reduces to the polynomial
    (1 + y^2) - 4 y t (1 - t).
    """
    y = 1 - x
    return (1 + y**2) - 4 * y * t * (1 - t)


def u2_from_t(t: np.ndarray) -> np.ndarray:
    return t / (1 - t)
