"""
Material properties of the radiator: radiation length, thermal vibration
amplitude and multiple-scattering spread.

Every ``sigma2ms_*`` function returns the mean-square *projected* scattering
angle (rad^2) of an electron of energy ``energy`` GeV (beta = 1) after
``thickness`` m of material. They differ only in the published
parameterization they implement.
"""

import numpy as np
from scipy import integrate, optimize

from cobrems.core.constants import (
    ALPHA,
    AMU_GEV,
    AVOGADRO,
    CM_TO_M,
    GEV_TO_MEV,
    KB_GEV,
    R_E,
)
from cobrems.core.exceptions import ConvergenceError, InvalidConfigurationError
from cobrems.core.logging_config import get_logger

logger = get_logger("beamline.scattering")


def _check_positive(**values: float) -> None:
    for name, value in values.items():
        if not value > 0:
            raise InvalidConfigurationError(f"{name} must be positive, got {value}")


# ============================================================================
# Radiation length
# ============================================================================


def radiation_length_pdg(Z: float, A: float, density: float) -> float:
    """
    Radiation length from the PDG fit (Dahl).

    X0 = 716.4 A / (Z (Z+1) ln(287/sqrt(Z))) g/cm^2

    Parameters
    ----------
    Z : float
        Atomic number
    A : float
        Atomic mass in amu
    density : float
        Mass density in g/cm^3

    Returns
    -------
    float
        Radiation length in m
    """
    _check_positive(Z=Z, A=A, density=density)
    x0_g_cm2 = 716.4 * A / (Z * (Z + 1) * np.log(287 / np.sqrt(Z)))
    return x0_g_cm2 / density * CM_TO_M


def radiation_length_schiff(Z: float, A: float, density: float) -> float:
    """
    Radiation length in the Schiff complete-screening approximation.

    1/X0 = 4 alpha r_e^2 (N_A/A) Z (Z+1) ln(183 Z^-1/3)

    Returns
    -------
    float
        Radiation length in m
    """
    _check_positive(Z=Z, A=A, density=density)
    r_e_cm = R_E / CM_TO_M
    inv_x0_cm2_g = 4 * ALPHA * r_e_cm**2 * AVOGADRO / A * Z * (Z + 1) * np.log(183 * Z ** (-1 / 3))
    return 1 / (inv_x0_cm2_g * density) * CM_TO_M


# ============================================================================
# Thermal vibrations
# ============================================================================


def debye_integral(y: float) -> float:
    """
    Debye function phi(y) = (1/y) * integral_0^y t / (e^t - 1) dt.

    phi(0) = 1 and phi(y) -> pi^2 / (6 y) for large y.
    """
    if y <= 0:
        return 1.0
    value, _ = integrate.quad(lambda t: t / np.expm1(t) if t > 0 else 1.0, 0.0, y)
    return value / y


def debye_waller_constant(debye_temperature: float, temperature: float, A: float) -> float:
    """
    Debye-Waller constant of a monatomic lattice in the Debye model.

    The coherent intensity of reciprocal vector q is suppressed by
    exp(-A q^2) with A = <u_x^2> / (hbar c)^2, where

        <u_x^2> = 3 hbar^2 / (M k Theta) * (phi(Theta/T) / (Theta/T) + 1/4)

    Parameters
    ----------
    debye_temperature : float
        Debye temperature Theta in K
    temperature : float
        Crystal temperature T in K
    A : float
        Atomic mass in amu

    Returns
    -------
    float
        Debye-Waller constant in GeV^-2
    """
    _check_positive(debye_temperature=debye_temperature, temperature=temperature, A=A)
    mass = A * AMU_GEV
    k_theta = KB_GEV * debye_temperature
    y = debye_temperature / temperature
    return 3 / (mass * k_theta) * (debye_integral(y) / y + 0.25)


# ============================================================================
# Multiple scattering
# ============================================================================


def sigma2ms_pdg(thickness: float, radiation_length: float, energy: float) -> float:
    """
    Highland formula with the Lynch-Dahl logarithmic correction (PDG).

    theta0 = 13.6 MeV / p * sqrt(t) * (1 + 0.038 ln t),  t = thickness / X0
    """
    _check_positive(thickness=thickness, radiation_length=radiation_length, energy=energy)
    t = thickness / radiation_length
    theta0 = 0.0136 / energy * np.sqrt(t) * (1 + 0.038 * np.log(t))
    return theta0**2


def sigma2ms_geant(thickness: float, radiation_length: float, energy: float) -> float:
    """
    Parameterization used by the GEANT multiple-scattering package.

    theta0^2 = (13.6 MeV / p)^2 * t * (1 + 0.105 ln t + 0.0035 (ln t)^2)
    """
    _check_positive(thickness=thickness, radiation_length=radiation_length, energy=energy)
    t = thickness / radiation_length
    log_t = np.log(t)
    return (0.0136 / energy) ** 2 * t * (1 + 0.105 * log_t + 0.0035 * log_t**2)


def sigma2ms_kaune(thickness: float, radiation_length: float, energy: float) -> float:
    """
    Original Highland form, as used by Kaune et al. for thin radiators.

    theta0 = 14.1 MeV / p * sqrt(t) * (1 + log10(t) / 9)
    """
    _check_positive(thickness=thickness, radiation_length=radiation_length, energy=energy)
    t = thickness / radiation_length
    theta0 = 0.0141 / energy * np.sqrt(t) * (1 + np.log10(t) / 9)
    return theta0**2


def sigma2ms_hanson(thickness: float, Z: float, A: float, density: float, energy: float) -> float:
    """
    Width of the Moliere distribution after Hanson et al.

    The 1/e width of the space-angle distribution is
    theta_1/e^2 = chi_c^2 (B - 1.2), where B solves B - ln B = ln Omega and
    Omega = chi_c^2 / (1.167 chi_a^2). Half of it is the projected
    mean-square angle.

    Parameters
    ----------
    thickness : float
        Material thickness in m
    Z, A : float
        Atomic number and mass (amu)
    density : float
        Mass density in g/cm^3
    energy : float
        Electron energy in GeV

    Returns
    -------
    float
        Mean-square projected angle in rad^2
    """
    _check_positive(thickness=thickness, Z=Z, A=A, density=density, energy=energy)
    p_mev = energy * GEV_TO_MEV
    areal_density = density * thickness / CM_TO_M  # g/cm^2
    chi_c2 = 0.157 * Z * (Z + 1) * areal_density / A / p_mev**2
    chi_a2 = 2.007e-5 * Z ** (2 / 3) * (1 + 3.34 * (Z * ALPHA) ** 2) / p_mev**2
    log_omega = np.log(chi_c2 / (1.167 * chi_a2))
    if log_omega <= 1:
        raise InvalidConfigurationError(
            f"Target too thin for the Moliere expansion (ln Omega = {log_omega:.3f})"
        )

    try:
        B = optimize.brentq(lambda b: b - np.log(b) - log_omega, 1.0, 10 * log_omega + 10)
    except ValueError as exc:
        raise ConvergenceError(f"Moliere parameter B did not converge: {exc}") from exc

    return chi_c2 * (B - 1.2) / 2


def sigma2ms(thickness: float, radiation_length: float, energy: float) -> float:
    """Default multiple-scattering estimate; delegates to the GEANT form."""
    return sigma2ms_geant(thickness, radiation_length, energy)
