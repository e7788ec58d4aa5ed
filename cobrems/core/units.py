"""
Unit conversion utilities for cobrems.

The engine itself only accepts m, GeV, rad, s and microampere. These helpers
exist for callers that hold their parameters in other units; nothing inside
the package converts implicitly.
"""

import numpy as np
from typing import Union

# ============================================================================
# Length Conversions
# ============================================================================

_LENGTH_TO_M = {
    "m": 1.0,
    "cm": 1e-2,
    "mm": 1e-3,
    "um": 1e-6,
    "μm": 1e-6,
    "nm": 1e-9,
    "a": 1e-10,
    "angstrom": 1e-10,
}


def convert_length(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert length between units.

    Parameters
    ----------
    value : float or array
        Length value(s) to convert
    from_unit : str
        Source unit: 'm', 'cm', 'mm', 'um', 'nm', 'A' (Angstrom)
    to_unit : str
        Target unit: 'm', 'cm', 'mm', 'um', 'nm', 'A' (Angstrom)

    Returns
    -------
    float or array
        Converted length value(s)

    Examples
    --------
    >>> convert_length(2, 'cm', 'm')
    0.02
    >>> convert_length(1, 'mm', 'm')
    0.001
    """
    try:
        meters = value * _LENGTH_TO_M[from_unit.lower()]
    except KeyError:
        raise ValueError(f"Unknown source unit: {from_unit}")

    try:
        return meters / _LENGTH_TO_M[to_unit.lower()]
    except KeyError:
        raise ValueError(f"Unknown target unit: {to_unit}")


# ============================================================================
# Energy Conversions
# ============================================================================

_ENERGY_TO_GEV = {
    "gev": 1.0,
    "mev": 1e-3,
    "kev": 1e-6,
    "ev": 1e-9,
}


def convert_energy(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert energy (or momentum, mass with c = 1) between units.

    Parameters
    ----------
    value : float or array
        Energy value(s) to convert
    from_unit : str
        Source unit: 'GeV', 'MeV', 'keV', 'eV'
    to_unit : str
        Target unit: 'GeV', 'MeV', 'keV', 'eV'

    Returns
    -------
    float or array
        Converted energy value(s)

    Examples
    --------
    >>> convert_energy(9000, 'MeV', 'GeV')
    9.0
    """
    try:
        gev = value * _ENERGY_TO_GEV[from_unit.lower()]
    except KeyError:
        raise ValueError(f"Unknown source unit: {from_unit}")

    try:
        return gev / _ENERGY_TO_GEV[to_unit.lower()]
    except KeyError:
        raise ValueError(f"Unknown target unit: {to_unit}")


# ============================================================================
# Angle Conversions
# ============================================================================


def convert_angle(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert angle between units.

    Parameters
    ----------
    value : float or array
        Angle value(s) to convert
    from_unit : str
        Source unit: 'rad', 'mrad', 'urad', 'deg'
    to_unit : str
        Target unit: 'rad', 'mrad', 'urad', 'deg'

    Returns
    -------
    float or array
        Converted angle value(s)

    Examples
    --------
    >>> convert_angle(50, 'mrad', 'rad')
    0.05
    """
    # Normalize to radians
    if from_unit.lower() == "rad":
        radians = value
    elif from_unit.lower() == "mrad":
        radians = value * 1e-3
    elif from_unit.lower() in ["urad", "μrad"]:
        radians = value * 1e-6
    elif from_unit.lower() in ["deg", "degree", "degrees"]:
        radians = np.deg2rad(value)
    else:
        raise ValueError(f"Unknown source unit: {from_unit}")

    # Convert from radians
    if to_unit.lower() == "rad":
        return radians
    elif to_unit.lower() == "mrad":
        return radians * 1e3
    elif to_unit.lower() in ["urad", "μrad"]:
        return radians * 1e6
    elif to_unit.lower() in ["deg", "degree", "degrees"]:
        return np.rad2deg(radians)
    else:
        raise ValueError(f"Unknown target unit: {to_unit}")


# ============================================================================
# Beam Current
# ============================================================================


def electrons_per_second(current_uA: float) -> float:
    """
    Convert a beam current in microampere to electrons per second.

    Rates returned by the generator are per incident electron; multiplying by
    this gives photons per second.
    """
    from cobrems.core.constants import E_CHARGE

    if current_uA < 0:
        raise ValueError("Beam current must be non-negative")
    return current_uA * 1e-6 / E_CHARGE
