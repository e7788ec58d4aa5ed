"""
Crystal species description and lookup table.

A species carries everything the rate engine needs to know about the radiator
material: bulk properties (Z, A, density, radiation length), lattice geometry
(cubic lattice constant and unit-cell basis) and the parameters of the atomic
form factor and thermal vibrations. New species can be registered at run time
or loaded from a configuration file, so supporting another crystal needs no
code change.
"""

from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

import numpy as np

from cobrems.beamline.scattering import (
    debye_waller_constant,
    radiation_length_pdg,
    radiation_length_schiff,
)
from cobrems.core.constants import ANGSTROM, HBARC
from cobrems.core.exceptions import InvalidConfigurationError
from cobrems.core.logging_config import get_logger

logger = get_logger("crystal.species")

Vector3 = Tuple[float, float, float]

# Conventional cubic cell of the diamond structure, in lattice-constant units
DIAMOND_CUBIC_SITES: Tuple[Vector3, ...] = (
    (0.0, 0.0, 0.0),
    (0.5, 0.5, 0.0),
    (0.5, 0.0, 0.5),
    (0.0, 0.5, 0.5),
    (0.25, 0.25, 0.25),
    (0.25, 0.75, 0.75),
    (0.75, 0.25, 0.75),
    (0.75, 0.75, 0.25),
)


@dataclass(frozen=True)
class CrystalSpecies:
    """
    Physical description of a radiator crystal with a cubic lattice.

    Attributes
    ----------
    name : str
        Species name used for lookup (e.g. 'diamond')
    Z : float
        Atomic number
    A : float
        Atomic mass in amu
    density : float
        Mass density in g/cm^3
    lattice_constant : float
        Cubic lattice constant in m
    debye_waller_const : float
        Debye-Waller constant A in GeV^-2 (coherent terms carry exp(-A q^2))
    mosaic_spread : float
        RMS mosaic spread in rad
    betaFF : float
        Screening parameter of the atomic form factor in GeV^-2; the
        screened nuclear potential falls as 1 / (1 + betaFF q^2)
    ucell_sites : tuple of 3-tuples
        Basis site positions in units of the lattice constant
    primary_hkl : tuple of int
        Miller indices of the reciprocal vector that sets the coherent edge
    debye_temperature : float, optional
        Debye temperature in K, used when a target temperature is configured
    radiation_length : float, optional
        Radiation length in m. Computed as the smaller of the PDG and Schiff
        values when not supplied.
    """

    name: str
    Z: float
    A: float
    density: float
    lattice_constant: float
    debye_waller_const: float
    mosaic_spread: float
    betaFF: float
    ucell_sites: Tuple[Vector3, ...]
    primary_hkl: Tuple[int, int, int]
    debye_temperature: Optional[float] = None
    radiation_length: Optional[float] = field(default=None)

    def __post_init__(self):
        # normalize sequences coming from YAML/JSON into hashable tuples
        object.__setattr__(
            self, "ucell_sites", tuple(tuple(float(c) for c in site) for site in self.ucell_sites)
        )
        object.__setattr__(self, "primary_hkl", tuple(int(i) for i in self.primary_hkl))
        self.validate()
        if self.radiation_length is None:
            object.__setattr__(
                self,
                "radiation_length",
                min(
                    radiation_length_pdg(self.Z, self.A, self.density),
                    radiation_length_schiff(self.Z, self.A, self.density),
                ),
            )

    @property
    def nsites(self) -> int:
        """Number of atoms in the unit cell."""
        return len(self.ucell_sites)

    @property
    def cell_volume(self) -> float:
        """Unit-cell volume in natural units (GeV^-3)."""
        return (self.lattice_constant / HBARC) ** 3

    @property
    def reciprocal_unit(self) -> float:
        """Length of the (1,0,0) reciprocal vector, 2 pi hbar c / a, in GeV."""
        return 2 * np.pi * HBARC / self.lattice_constant

    @property
    def atom_density(self) -> float:
        """Number of atoms per m^3."""
        # nsites atoms per cubic cell
        return self.nsites / self.lattice_constant**3

    def validate(self) -> bool:
        """
        Validate species parameters.

        Raises
        ------
        InvalidConfigurationError
            If any parameter is out of range
        """
        if not self.name:
            raise InvalidConfigurationError("Crystal species needs a name")
        for attr in ("Z", "A", "density", "lattice_constant", "betaFF"):
            if not getattr(self, attr) > 0:
                raise InvalidConfigurationError(f"Crystal '{self.name}': {attr} must be positive")
        for attr in ("debye_waller_const", "mosaic_spread"):
            if getattr(self, attr) < 0:
                raise InvalidConfigurationError(
                    f"Crystal '{self.name}': {attr} must be non-negative"
                )
        if self.radiation_length is not None and not self.radiation_length > 0:
            raise InvalidConfigurationError(
                f"Crystal '{self.name}': radiation_length must be positive"
            )
        if self.debye_temperature is not None and not self.debye_temperature > 0:
            raise InvalidConfigurationError(
                f"Crystal '{self.name}': debye_temperature must be positive"
            )
        if not self.ucell_sites:
            raise InvalidConfigurationError(f"Crystal '{self.name}' has no unit-cell sites")
        if any(len(site) != 3 for site in self.ucell_sites):
            raise InvalidConfigurationError(f"Crystal '{self.name}': sites must be 3-vectors")
        if len(self.primary_hkl) != 3 or not any(self.primary_hkl):
            raise InvalidConfigurationError(
                f"Crystal '{self.name}': primary_hkl must be a non-zero index triple"
            )
        return True

    def debye_waller_at(self, temperature: float) -> float:
        """
        Debye-Waller constant at ``temperature`` K from the Debye model.

        Raises
        ------
        InvalidConfigurationError
            If the species has no Debye temperature
        """
        if self.debye_temperature is None:
            raise InvalidConfigurationError(
                f"Crystal '{self.name}' has no Debye temperature; "
                "cannot scale the Debye-Waller factor with temperature"
            )
        return debye_waller_constant(self.debye_temperature, temperature, self.A)

    def to_dict(self) -> Dict:
        """Plain-dict form suitable for YAML/JSON serialization."""
        data = asdict(self)
        data["ucell_sites"] = [list(site) for site in self.ucell_sites]
        data["primary_hkl"] = list(self.primary_hkl)
        return data


def _diamond() -> CrystalSpecies:
    return CrystalSpecies(
        name="diamond",
        Z=6,
        A=12.01,
        density=3.534,
        lattice_constant=3.5668e-10,
        # Debye model at 293 K, Theta = 2220 K
        debye_waller_const=3.905e8,
        mosaic_spread=5e-6,
        betaFF=0.111 * ANGSTROM**2 / HBARC**2,
        ucell_sites=DIAMOND_CUBIC_SITES,
        primary_hkl=(2, 2, 0),
        debye_temperature=2220.0,
    )


def _silicon() -> CrystalSpecies:
    return CrystalSpecies(
        name="silicon",
        Z=14,
        A=28.086,
        density=2.329,
        lattice_constant=5.431e-10,
        # Debye model at 293 K, Theta = 645 K
        debye_waller_const=1.058e9,
        mosaic_spread=1e-6,
        betaFF=0.063 * ANGSTROM**2 / HBARC**2,
        ucell_sites=DIAMOND_CUBIC_SITES,
        primary_hkl=(2, 2, 0),
        debye_temperature=645.0,
    )


class CrystalTable:
    """
    Registry of crystal species by name.

    The default table knows diamond and silicon. A table can be extended
    programmatically with :meth:`register` or from the ``crystals`` section
    of a configuration file with :meth:`from_file`.
    """

    def __init__(self, species: Optional[Dict[str, CrystalSpecies]] = None, defaults: bool = True):
        self._species: Dict[str, CrystalSpecies] = {}
        if defaults:
            for entry in (_diamond(), _silicon()):
                self._species[entry.name] = entry
        for entry in (species or {}).values():
            self.register(entry)

    def register(self, species: CrystalSpecies, overwrite: bool = True) -> None:
        """Add or replace a species."""
        if not overwrite and species.name in self._species:
            raise InvalidConfigurationError(f"Crystal '{species.name}' already registered")
        self._species[species.name] = species
        logger.debug(f"Registered crystal species '{species.name}'")

    def get(self, name: str) -> CrystalSpecies:
        """
        Look up a species by name.

        Raises
        ------
        InvalidConfigurationError
            If the name is unknown
        """
        try:
            return self._species[name]
        except KeyError:
            raise InvalidConfigurationError(
                f"Unknown crystal '{name}'. Known crystals: {sorted(self._species)}"
            )

    def names(self):
        return sorted(self._species)

    def __contains__(self, name: str) -> bool:
        return name in self._species

    def __iter__(self) -> Iterator[CrystalSpecies]:
        return iter(self._species.values())

    def __len__(self) -> int:
        return len(self._species)

    def variant(self, name: str, new_name: str, **changes) -> CrystalSpecies:
        """
        Register and return a modified copy of an existing species.

        Useful for studies such as a zero-mosaic or cryogenic diamond.
        """
        base = self.get(name)
        if "radiation_length" not in changes and any(k in changes for k in ("Z", "A", "density")):
            changes["radiation_length"] = None
        entry = replace(base, name=new_name, **changes)
        self.register(entry)
        return entry

    @classmethod
    def from_config(cls, config: Dict, defaults: bool = True) -> "CrystalTable":
        """Build a table from the ``crystals`` section of a config dict."""
        from cobrems.core.config import validate_crystal_config

        validate_crystal_config(config)
        table = cls(defaults=defaults)
        for name, fields in config.get("crystals", {}).items():
            table.register(CrystalSpecies(name=name, **fields))
        return table

    @classmethod
    def from_file(cls, config_path: Union[str, Path], defaults: bool = True) -> "CrystalTable":
        """Build a table from a YAML/JSON configuration file."""
        from cobrems.core.config import load_config

        return cls.from_config(load_config(config_path), defaults=defaults)


DEFAULT_CRYSTALS = CrystalTable()
