"""
Geometric acceptance of the photon collimator.

A photon emitted at polar angle theta and azimuth phi would reach the
collimator plane at D * theta * (cos phi, sin phi). The electron position at
the collimator (beam spot) and the multiple-scattering deflection of the
electron before it radiates smear that point with a round Gaussian of width
sigma in each transverse coordinate. The probability of landing inside a
disc of radius R centred at (xshift, yshift) is then the Rice distribution
CDF, which is the exact 2D overlap integral.
"""

from typing import Union

import numpy as np
from scipy import stats

ArrayLike = Union[float, np.ndarray]


def collimator_acceptance(
    theta2: ArrayLike,
    phi: ArrayLike,
    distance: float,
    diameter: float,
    sigma: float,
    xshift: float = 0.0,
    yshift: float = 0.0,
) -> ArrayLike:
    """
    Probability that a photon passes a circular collimator.

    Parameters
    ----------
    theta2 : float or array
        Squared emission angle, rad^2
    phi : float or array
        Emission azimuth in the beam frame, rad
    distance : float
        Radiator to collimator distance, m
    diameter : float
        Aperture diameter, m
    sigma : float
        RMS smearing of the landing point per transverse coordinate, m
    xshift, yshift : float
        Offset of the aperture centre from the beam axis, m

    Returns
    -------
    float or array
        Acceptance in [0, 1]
    """
    theta = np.sqrt(theta2)
    dx = distance * theta * np.cos(phi) - xshift
    dy = distance * theta * np.sin(phi) - yshift
    offset = np.hypot(dx, dy)
    radius = diameter / 2

    if sigma > 0:
        result = stats.rice.cdf(radius, offset / sigma, scale=sigma)
    else:
        # sharp aperture edge
        result = np.where(offset < radius, 1.0, np.where(offset == radius, 0.5, 0.0))

    result = np.clip(result, 0.0, 1.0)
    if np.ndim(result) == 0:
        return float(result)
    return result


def landing_spread(spotrms: float, distance: float, sigma2ms: float) -> float:
    """
    RMS smearing of the photon landing point per transverse coordinate, m.

    Photons are radiated uniformly through the target depth, so on average
    they inherit half of the exit multiple-scattering variance.
    """
    return float(np.sqrt(spotrms**2 + distance**2 * sigma2ms / 2))
