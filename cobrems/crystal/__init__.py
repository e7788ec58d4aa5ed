"""
Radiator crystal: species table, reciprocal lattice and orientation.
"""

from cobrems.crystal.species import CrystalSpecies, CrystalTable, DEFAULT_CRYSTALS
from cobrems.crystal.lattice import ReciprocalLatticeTable, reciprocal_lattice
from cobrems.crystal.orientation import Orientation

__all__ = [
    "CrystalSpecies",
    "CrystalTable",
    "DEFAULT_CRYSTALS",
    "ReciprocalLatticeTable",
    "reciprocal_lattice",
    "Orientation",
]
