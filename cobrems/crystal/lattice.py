"""
Reciprocal lattice of a cubic crystal.

The table lists every reciprocal vector with Miller indices inside the cube
max(|h|, |k|, |l|) <= hmax whose structure factor does not vanish, together
with the index shell it belongs to. It depends only on the species and the
cutoff, never on the orientation, and is cached.
"""

from dataclasses import dataclass

import numpy as np

from cobrems.core.cache import cached_lattice_table
from cobrems.core.exceptions import InvalidConfigurationError
from cobrems.core.logging_config import get_logger
from cobrems.crystal.species import CrystalSpecies

logger = get_logger("crystal.lattice")

# Starting index cutoff of the lattice sum
DEFAULT_HMAX = 32

# Hard ceiling the cutoff may grow to, and the step it grows by
MAX_HMAX = 64
HMAX_STEP = 8

# Structure factors below this fraction of nsites^2 are treated as extinct
EXTINCTION_THRESHOLD = 1e-8


@dataclass(frozen=True)
class ReciprocalLatticeTable:
    """
    Allowed reciprocal-lattice vectors of a species.

    Attributes
    ----------
    hkl : ndarray, shape (N, 3)
        Integer Miller indices
    vectors : ndarray, shape (N, 3)
        Reciprocal vectors in the crystal frame, GeV
    q2 : ndarray, shape (N,)
        Squared vector lengths, GeV^2
    S2 : ndarray, shape (N,)
        Squared modulus of the unit-cell structure factor
    shell : ndarray, shape (N,)
        Index shell max(|h|, |k|, |l|)
    hmax : int
        Index cutoff used to build the table
    """

    hkl: np.ndarray
    vectors: np.ndarray
    q2: np.ndarray
    S2: np.ndarray
    shell: np.ndarray
    hmax: int

    def __len__(self) -> int:
        return len(self.S2)


def miller_indices(hmax: int) -> np.ndarray:
    """All integer triples with max(|h|,|k|,|l|) <= hmax except the origin."""
    if hmax < 1:
        raise InvalidConfigurationError(f"hmax must be at least 1, got {hmax}")
    axis = np.arange(-hmax, hmax + 1)
    h, k, l = np.meshgrid(axis, axis, axis, indexing="ij")
    hkl = np.column_stack([h.ravel(), k.ravel(), l.ravel()])
    return hkl[np.any(hkl != 0, axis=1)]


def structure_factor2(hkl: np.ndarray, sites) -> np.ndarray:
    """
    Squared modulus of the structure factor S = sum_j exp(2 pi i hkl . r_j).

    Parameters
    ----------
    hkl : array, shape (N, 3)
        Miller indices
    sites : array-like, shape (n, 3)
        Basis positions in lattice-constant units

    Returns
    -------
    array, shape (N,)
        |S|^2
    """
    hkl = np.asarray(hkl, dtype=float)
    S = np.zeros(len(hkl), dtype=complex)
    # one site at a time keeps memory linear in the number of vectors
    for site in np.asarray(sites, dtype=float):
        S += np.exp(2j * np.pi * (hkl @ site))
    return np.abs(S) ** 2


@cached_lattice_table
def reciprocal_lattice(species: CrystalSpecies, hmax: int = DEFAULT_HMAX) -> ReciprocalLatticeTable:
    """
    Build the table of allowed reciprocal vectors for a species.

    Parameters
    ----------
    species : CrystalSpecies
        Crystal description
    hmax : int
        Largest Miller index magnitude included

    Returns
    -------
    ReciprocalLatticeTable
        Immutable table; arrays are flagged read-only so cached tables can be
        shared between generator instances.
    """
    hkl = miller_indices(hmax)
    S2 = structure_factor2(hkl, species.ucell_sites)
    allowed = S2 > EXTINCTION_THRESHOLD * species.nsites**2

    hkl = hkl[allowed]
    S2 = S2[allowed]
    vectors = species.reciprocal_unit * hkl.astype(float)
    q2 = np.einsum("ij,ij->i", vectors, vectors)
    shell = np.abs(hkl).max(axis=1)

    for array in (hkl, vectors, q2, S2, shell):
        array.setflags(write=False)

    logger.debug(
        f"Reciprocal lattice for {species.name}: {len(S2)} allowed vectors with hmax={hmax}"
    )
    return ReciprocalLatticeTable(hkl=hkl, vectors=vectors, q2=q2, S2=S2, shell=shell, hmax=hmax)


def hmax_schedule(start: int = DEFAULT_HMAX, limit: int = MAX_HMAX, step: int = HMAX_STEP):
    """
    Cutoffs tried in turn by the lattice sum: ``start`` growing by ``step``,
    ending exactly at ``limit``.

    Raises
    ------
    InvalidConfigurationError
        If start < 1 or limit < start
    """
    if start < 1 or limit < start:
        raise InvalidConfigurationError(
            f"Need 1 <= hmax <= hmax_limit, got hmax={start}, hmax_limit={limit}"
        )
    cutoffs = list(range(start, limit, step))
    cutoffs.append(limit)
    return cutoffs


def primary_vector(species: CrystalSpecies) -> np.ndarray:
    """Crystal-frame reciprocal vector of the primary Miller indices, GeV."""
    return species.reciprocal_unit * np.asarray(species.primary_hkl, dtype=float)
