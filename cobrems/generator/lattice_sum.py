"""
Coherent reciprocal-lattice sum.

Each allowed reciprocal vector g of the oriented crystal contributes to the
coherent spectrum at every x whose minimum longitudinal momentum transfer
delta(x) it can supply, g_L >= delta(x). Its photon is emitted at
u^2 = g_L / delta - 1 and its linear polarization lies along the azimuth of
g_T. Contributions are grouped by index shell so the sum can report how much
the outermost shells still add; the cutoff grows until they add too little
to change the photon rate.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Tuple

import numpy as np

from cobrems.core.constants import EDGE_TOLERANCE, ME
from cobrems.core.exceptions import LatticeSumConvergenceError
from cobrems.core.logging_config import get_logger
from cobrems.crystal.lattice import ReciprocalLatticeTable
from cobrems.generator.rates import angular_shape, min_momentum_transfer, polarized_shape

logger = get_logger("generator.lattice_sum")

# Largest fraction of the photon rate the two outermost shells may contribute
LATTICE_SUM_TOLERANCE = 1e-3


@dataclass(frozen=True)
class LatticeSumRecord:
    """
    Outcome of one coherent lattice sum at fixed x.

    Only the vectors that contribute at x are listed.

    Attributes
    ----------
    x : float
        Photon energy fraction
    theta2 : ndarray
        Photon emission angle squared per vector, rad^2
    weight : ndarray
        Contribution of each vector to dN/dx (uncollimated)
    phi : ndarray
        Azimuth of each vector's transverse component, rad
    polarization : ndarray
        Linearly polarized part of each weight
    hkl : ndarray, shape (N, 3)
        Miller indices of the contributing vectors
    shell : ndarray
        Index shell max(|h|, |k|, |l|) of each contributing vector
    hmax : int
        Index cutoff of the sum
    converged : bool
        False when no cutoff up to the ceiling met the tolerance
    """

    x: float
    theta2: np.ndarray
    weight: np.ndarray
    phi: np.ndarray
    polarization: np.ndarray
    hkl: np.ndarray
    shell: np.ndarray
    hmax: int
    converged: bool = True

    @property
    def total(self) -> float:
        return float(self.weight.sum())

    @property
    def shells(self) -> np.ndarray:
        """Summed |weight| per index shell 0..hmax."""
        return shell_profile(self.shell, self.weight, self.hmax)

    def __len__(self) -> int:
        return len(self.weight)


@dataclass(frozen=True)
class OrientedLattice:
    """
    Orientation-dependent, x-independent factors of the lattice sum.

    Attributes
    ----------
    q_long : ndarray
        Longitudinal (beam-axis) component of each vector, GeV
    phi : ndarray
        Azimuth of each transverse component, rad
    form_weight : ndarray
        |S|^2 exp(-A g^2) (betaFF / (1 + betaFF g^2))^2 g_T^2 per vector
    table : ReciprocalLatticeTable
        Source table
    """

    q_long: np.ndarray
    phi: np.ndarray
    form_weight: np.ndarray
    table: ReciprocalLatticeTable


def orient_lattice(
    table: ReciprocalLatticeTable, matrix: np.ndarray, betaFF: float, debye_waller: float
) -> OrientedLattice:
    """Rotate a lattice table into the beam frame and fold in the static weights."""
    beam = table.vectors @ np.asarray(matrix).T
    qT2 = beam[:, 0] ** 2 + beam[:, 1] ** 2
    form = betaFF / (1 + betaFF * table.q2)
    form_weight = table.S2 * np.exp(-debye_waller * table.q2) * form**2 * qT2
    return OrientedLattice(
        q_long=beam[:, 2],
        phi=np.arctan2(beam[:, 1], beam[:, 0]),
        form_weight=form_weight,
        table=table,
    )


def shell_profile(shell: np.ndarray, weight: np.ndarray, hmax: int) -> np.ndarray:
    return np.bincount(shell, weights=np.abs(weight), minlength=hmax + 1)


def outer_shell_fraction(
    shell: np.ndarray, weight: np.ndarray, hmax: int, reference: float = 0.0
) -> float:
    """
    Share of sum(|weight|) + ``reference`` carried by the two outermost shells.

    ``reference`` is a rate the lattice sum is added to (the incoherent
    rate), so a coherent part that is itself negligible cannot fail the test.
    """
    profile = shell_profile(shell, weight, hmax)
    total = profile.sum() + reference
    if total <= 0:
        return 0.0
    return float(profile[-2:].sum() / total)


def coherent_lattice_sum(
    x: float,
    energy: float,
    lattice: OrientedLattice,
    prefactor: float,
) -> LatticeSumRecord:
    """
    Evaluate the coherent lattice sum at one energy fraction and cutoff.

    Parameters
    ----------
    x : float
        Photon energy fraction in (0, 1)
    energy : float
        Beam energy, GeV
    lattice : OrientedLattice
        Beam-frame lattice factors
    prefactor : float
        Target normalization N_t (2 alpha Z^2 r_e^2 / pi) (2 pi)^3 / (n_s V_cell)

    Returns
    -------
    LatticeSumRecord
        Per-vector contributions
    """
    delta = min_momentum_transfer(x, energy)
    active = lattice.q_long >= delta * (1 - EDGE_TOLERANCE)

    u2 = np.maximum(lattice.q_long[active] / delta - 1, 0.0)
    scale = prefactor / x * lattice.form_weight[active] / delta

    table = lattice.table
    return LatticeSumRecord(
        x=float(x),
        theta2=u2 * (ME / energy) ** 2,
        weight=scale * angular_shape(x, u2),
        phi=lattice.phi[active],
        polarization=scale * polarized_shape(x, u2),
        hkl=table.hkl[active],
        shell=table.shell[active],
        hmax=table.hmax,
    )


def converged_lattice_sum(
    x: float,
    energy: float,
    lattice_for: Callable[[int], OrientedLattice],
    prefactor: float,
    cutoffs: Iterable[int],
    weigh: Optional[Callable[[LatticeSumRecord], np.ndarray]] = None,
    reference: float = 0.0,
    tolerance: float = LATTICE_SUM_TOLERANCE,
) -> Tuple[LatticeSumRecord, np.ndarray]:
    """
    Evaluate the lattice sum with growing cutoffs until it has converged.

    The sum at a cutoff is accepted when its two outermost shells carry at
    most ``tolerance`` of the rate actually summed: the weights returned by
    ``weigh`` (collimator acceptance or polarization projection applied)
    plus ``reference``.

    Parameters
    ----------
    x, energy, prefactor
        As for :func:`coherent_lattice_sum`
    lattice_for : callable
        Returns the oriented lattice for a cutoff
    cutoffs : iterable of int
        Cutoffs to try, increasing
    weigh : callable, optional
        Maps a record to the per-vector weights that are summed; defaults to
        the uncollimated weights
    reference : float
        Rate added to the coherent sum when judging the tail
    tolerance : float
        Largest accepted outer-shell fraction

    Returns
    -------
    record, weights
        The accepted record and its summed weights

    Raises
    ------
    LatticeSumConvergenceError
        If the last cutoff still fails; the error carries that record with
        ``converged=False``
    """
    record = None
    for hmax in cutoffs:
        record = coherent_lattice_sum(x, energy, lattice_for(hmax), prefactor)
        weights = record.weight if weigh is None else weigh(record)
        tail = outer_shell_fraction(record.shell, weights, hmax, reference)
        logger.debug(
            f"Lattice sum at x={x:.6g}, hmax={hmax}: {len(record)} vectors, "
            f"sum={np.sum(weights):.6g}, outer-shell fraction={tail:.3g}"
        )
        if tail <= tolerance:
            return record, weights

    if record is None:
        raise ValueError("No lattice cutoffs given")
    record = replace(record, converged=False)
    message = (
        f"Lattice sum at x={x:.6g} not converged: outer shells carry {tail:.3g} "
        f"of the rate (tolerance {tolerance:g}, hmax={record.hmax})"
    )
    logger.warning(message)
    raise LatticeSumConvergenceError(message, record)


def primary_geometry(
    primary: np.ndarray, matrix: np.ndarray
) -> Tuple[float, float]:
    """Beam-frame (q_long, q_trans) of the primary reciprocal vector."""
    beam = np.asarray(matrix) @ primary
    return float(beam[2]), float(np.hypot(beam[0], beam[1]))
