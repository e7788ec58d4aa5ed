"""
cobrems: coherent bremsstrahlung photon rates from oriented crystal radiators

Computes coherent and incoherent photon spectra, linear polarization,
collimator acceptance and multiple-scattering estimates for a relativistic
electron beam crossing a thin crystal followed by a collimator.
"""

__version__ = "0.1.0"

# Core imports for convenience
from cobrems.core import constants
from cobrems.core import units
from cobrems.beamline.config import BeamlineConfig, CollimatorOverride
from cobrems.crystal.species import CrystalSpecies, CrystalTable
from cobrems.generator.radiator import RadiatorModel, OrientationSolution

__all__ = [
    "constants",
    "units",
    "BeamlineConfig",
    "CollimatorOverride",
    "CrystalSpecies",
    "CrystalTable",
    "RadiatorModel",
    "OrientationSolution",
]
