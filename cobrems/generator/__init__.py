"""
Photon rate engine: closed-form kernels, lattice sum and the radiator model.
"""

from cobrems.generator.lattice_sum import LatticeSumRecord
from cobrems.generator.radiator import RadiatorModel, OrientationSolution

__all__ = ["LatticeSumRecord", "RadiatorModel", "OrientationSolution"]
