"""
Coherent bremsstrahlung radiator model.

Ties together the crystal species, its orientation, the beamline and the
collimator into differential photon rates per incident electron. Coherent
rates come from the reciprocal-lattice sum; incoherent rates from the
complete-screening Bethe-Heitler spectrum split into its nuclear and
atomic-electron shares.

Instances are not synchronized. Give each worker thread its own
:meth:`RadiatorModel.clone`.
"""

import copy
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import optimize

from cobrems.beamline import scattering
from cobrems.beamline.acceptance import collimator_acceptance, landing_spread
from cobrems.beamline.config import BeamlineConfig, CollimatorOverride, check_positive
from cobrems.beamline.convolution import smear_log_edge
from cobrems.core.constants import ALPHA, DPI, EPSILON, ME, R_E
from cobrems.core.exceptions import (
    CoherentEdgeError,
    InvalidConfigurationError,
    InvalidKinematicsError,
    LatticeSumConvergenceError,
    NumericalGuardError,
)
from cobrems.core.logging_config import get_logger
from cobrems.crystal.lattice import (
    DEFAULT_HMAX,
    MAX_HMAX,
    hmax_schedule,
    primary_vector,
    reciprocal_lattice,
)
from cobrems.crystal.orientation import Orientation, rotation_matrix
from cobrems.crystal.species import DEFAULT_CRYSTALS, CrystalSpecies, CrystalTable
from cobrems.generator import rates
from cobrems.generator.lattice_sum import (
    LATTICE_SUM_TOLERANCE,
    LatticeSumRecord,
    OrientedLattice,
    converged_lattice_sum,
    orient_lattice,
    primary_geometry,
)

logger = get_logger("generator.radiator")

# Large tilt angle set at construction; keeps the (0,0,l) planes well away
# from the primary edge
DEFAULT_LARGE_ANGLE = 0.05  # rad

# Bracket of the small-angle root search
EDGE_SEARCH_MAX_ANGLE = DPI / 4


@dataclass(frozen=True)
class OrientationSolution:
    """
    Crystal angles that place the coherent edge at a requested energy.

    Attributes
    ----------
    thetax, thetay, thetaz : float
        Orientation angles, rad
    edge_energy : float
        Requested edge energy, GeV
    x_edge : float
        Edge energy as a fraction of the beam energy
    iterations : int
        Root-finder iterations used
    """

    thetax: float
    thetay: float
    thetaz: float
    edge_energy: float
    x_edge: float
    iterations: int


def _beamline_property(name: str, doc: str):
    def getter(self):
        return getattr(self._beamline, name)

    def setter(self, value):
        # replace() re-runs BeamlineConfig validation
        self._beamline = replace(self._beamline, **{name: value})
        if name == "target_temperature":
            self._lattices = {}
        logger.debug(f"Set {name} = {value}")

    return property(getter, setter, doc=doc)


class RadiatorModel:
    """
    Photon rates from an oriented crystal radiator behind a collimator.

    Parameters
    ----------
    Emax : float
        Electron beam energy, GeV
    Epeak : float
        Photon energy of the coherent edge, GeV; must satisfy Emax > Epeak > 0
    crystal : str
        Name of the radiator species in ``crystal_table``
    crystal_table : CrystalTable, optional
        Species lookup; defaults to the built-in table
    beamline : BeamlineConfig, optional
        Beam, radiator and collimator parameters. Its beam energy is replaced
        by ``Emax``.
    hmax : int
        Starting Miller-index cutoff of the lattice sum
    hmax_limit : int
        Largest cutoff the lattice sum may grow to before it is declared
        unconverged
    """

    beam_energy = _beamline_property("beam_energy", "Electron beam energy, GeV")
    beam_erms = _beamline_property("beam_erms", "RMS beam energy spread, GeV")
    beam_emittance = _beamline_property("beam_emittance", "Transverse beam emittance, m rad")
    collimator_spotrms = _beamline_property(
        "collimator_spotrms", "RMS electron beam spot at the collimator, m"
    )
    collimator_distance = _beamline_property(
        "collimator_distance", "Radiator to collimator distance, m"
    )
    collimator_diameter = _beamline_property("collimator_diameter", "Collimator diameter, m")
    target_thickness = _beamline_property("target_thickness", "Radiator thickness, m")
    target_temperature = _beamline_property(
        "target_temperature", "Radiator temperature, K (None uses the tabulated Debye-Waller)"
    )

    def __init__(
        self,
        Emax: float,
        Epeak: float,
        crystal: str = "diamond",
        crystal_table: Optional[CrystalTable] = None,
        beamline: Optional[BeamlineConfig] = None,
        hmax: int = DEFAULT_HMAX,
        hmax_limit: int = MAX_HMAX,
    ):
        if not Emax > Epeak > 0:
            raise InvalidConfigurationError(
                f"Beam and edge energies must satisfy Emax > Epeak > 0, got {Emax}, {Epeak}"
            )
        self._cutoffs = hmax_schedule(int(hmax), int(hmax_limit))

        self._crystals = crystal_table if crystal_table is not None else DEFAULT_CRYSTALS
        if beamline is None:
            self._beamline = BeamlineConfig(beam_energy=Emax)
        else:
            self._beamline = replace(beamline, beam_energy=Emax)
        self._species = self._crystals.get(crystal)
        self._orientation = Orientation()
        self._lattices: Dict[int, OrientedLattice] = {}
        self._last_lattice_sum: Optional[LatticeSumRecord] = None
        self.collimated_flux = True
        self.polarized_flux = False

        self._orientation.set_angles(0.0, DEFAULT_LARGE_ANGLE, 0.0)
        self.set_coherent_edge(Epeak)

        logger.info(
            f"Initialized RadiatorModel: E={Emax:.4g} GeV, edge={Epeak:.4g} GeV, "
            f"crystal={crystal}, hmax={self.hmax}..{self.hmax_limit}"
        )

    @classmethod
    def from_config(cls, config_path: Union[str, Path]) -> "RadiatorModel":
        """
        Build a model from a YAML/JSON configuration file.

        The ``beamline`` section holds the BeamlineConfig fields plus
        ``coherent_edge`` (GeV, required), and optionally ``crystal``,
        ``collimated_flux``, ``polarized_flux``, ``hmax``, ``hmax_limit`` and explicit
        ``thetax``/``thetay``/``thetaz`` angles, which are applied after the
        edge has been solved. An optional ``crystals`` section registers
        additional species.
        """
        from cobrems.core.config import load_config, validate_beamline_config

        config = load_config(config_path)
        validate_beamline_config(config)
        section = config["beamline"]
        if section.get("coherent_edge") is None:
            raise InvalidConfigurationError("Beamline config missing required field: coherent_edge")

        table = CrystalTable.from_config(config)
        beamline = BeamlineConfig.from_dict(section)
        model = cls(
            beamline.beam_energy,
            section["coherent_edge"],
            crystal=section.get("crystal", "diamond"),
            crystal_table=table,
            beamline=beamline,
            hmax=section.get("hmax", DEFAULT_HMAX),
            hmax_limit=section.get("hmax_limit", MAX_HMAX),
        )
        model.collimated_flux = bool(section.get("collimated_flux", True))
        model.polarized_flux = bool(section.get("polarized_flux", False))

        if any(name in section for name in ("thetax", "thetay", "thetaz")):
            model.set_target_angles(
                section.get("thetax", model.thetax),
                section.get("thetay", model.thetay),
                section.get("thetaz", model.thetaz),
            )
        return model

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def beamline(self) -> BeamlineConfig:
        """Copy of the current beamline configuration."""
        return replace(self._beamline)

    @property
    def species(self) -> CrystalSpecies:
        return self._species

    @property
    def target_crystal(self) -> str:
        return self._species.name

    @property
    def crystal_table(self) -> CrystalTable:
        return self._crystals

    @property
    def hmax(self) -> int:
        """Starting cutoff of the lattice sum."""
        return self._cutoffs[0]

    @property
    def hmax_limit(self) -> int:
        """Largest cutoff the lattice sum may grow to."""
        return self._cutoffs[-1]

    def set_target_crystal(self, name: str) -> None:
        """
        Switch the radiator species by name. The orientation is kept.

        Raises
        ------
        InvalidConfigurationError
            If the name is not in the crystal table
        """
        self._species = self._crystals.get(name)
        self._lattices = {}
        logger.info(f"Target crystal set to {name}")

    @property
    def debye_waller_constant(self) -> float:
        """Debye-Waller constant in effect, GeV^-2."""
        if self._beamline.target_temperature is None:
            return self._species.debye_waller_const
        return self._species.debye_waller_at(self._beamline.target_temperature)

    def get_target_debye_waller_constant(self, debye_temperature: float, temperature: float) -> float:
        """Debye-model Debye-Waller constant (GeV^-2) for the current species' mass."""
        return scattering.debye_waller_constant(debye_temperature, temperature, self._species.A)

    def get_target_radiation_length_PDG(self) -> float:
        """Radiation length of the target material from the PDG fit, m."""
        s = self._species
        return scattering.radiation_length_pdg(s.Z, s.A, s.density)

    def get_target_radiation_length_Schiff(self) -> float:
        """Radiation length of the target material from Schiff's formula, m."""
        s = self._species
        return scattering.radiation_length_schiff(s.Z, s.A, s.density)

    # ------------------------------------------------------------------
    # Orientation
    # ------------------------------------------------------------------

    @property
    def orientation(self) -> Orientation:
        """Copy of the current orientation."""
        return self._orientation.copy()

    @property
    def thetax(self) -> float:
        return self._orientation.thetax

    @thetax.setter
    def thetax(self, value: float):
        self.set_target_thetax(value)

    @property
    def thetay(self) -> float:
        return self._orientation.thetay

    @thetay.setter
    def thetay(self, value: float):
        self.set_target_thetay(value)

    @property
    def thetaz(self) -> float:
        return self._orientation.thetaz

    @thetaz.setter
    def thetaz(self, value: float):
        self.set_target_thetaz(value)

    def set_target_angles(self, thetax: float, thetay: float, thetaz: float) -> None:
        self._orientation.set_angles(thetax, thetay, thetaz)
        self._orientation_changed()

    def set_target_thetax(self, thetax: float) -> None:
        self.set_target_angles(thetax, self.thetay, self.thetaz)

    def set_target_thetay(self, thetay: float) -> None:
        self.set_target_angles(self.thetax, thetay, self.thetaz)

    def set_target_thetaz(self, thetaz: float) -> None:
        self.set_target_angles(self.thetax, self.thetay, thetaz)

    def rotate_target(self, thetax: float, thetay: float, thetaz: float) -> None:
        """Compose an incremental rotation Rx(thetax) Ry(thetay) Rz(thetaz)."""
        self._orientation.rotate(thetax, thetay, thetaz)
        self._orientation_changed()

    def reset_target_orientation(self) -> None:
        """Identity orientation with all angles zero."""
        self._orientation.reset()
        self._orientation_changed()

    def _orientation_changed(self) -> None:
        self._lattices = {}
        logger.info(f"Target orientation: {self._orientation!r}")

    def solve_coherent_edge(self, Epeak: float) -> OrientationSolution:
        """
        Find the orientation that puts the primary coherent edge at ``Epeak``.

        The current large angle thetay is kept. The roll thetaz turns the
        primary reciprocal vector onto the beam-frame y axis and the small
        angle thetax is found by Brent's method so that the vector's
        longitudinal component equals delta(Epeak / E). The model is not
        modified.

        Raises
        ------
        InvalidConfigurationError
            If Epeak is not inside (0, E)
        CoherentEdgeError
            If no root is bracketed or the root finder fails
        """
        energy = self._beamline.beam_energy
        if not 0 < Epeak < energy:
            raise InvalidConfigurationError(
                f"Coherent edge {Epeak} GeV must lie between 0 and the beam energy {energy} GeV"
            )

        x_edge = Epeak / energy
        delta = rates.min_momentum_transfer(x_edge, energy)
        primary = primary_vector(self._species)
        h, k, _ = self._species.primary_hkl
        thetay = self.thetay
        thetaz = float(np.arctan2(h, k))

        def mismatch(thetax):
            return (rotation_matrix(thetax, thetay, thetaz) @ primary)[2] - delta

        try:
            thetax, result = optimize.brentq(
                mismatch,
                0.0,
                EDGE_SEARCH_MAX_ANGLE,
                xtol=1e-15,
                rtol=1e-15,
                full_output=True,
            )
        except (ValueError, RuntimeError) as exc:
            raise CoherentEdgeError(
                f"No orientation puts the {self._species.primary_hkl} edge at {Epeak} GeV: {exc}"
            ) from exc
        if not result.converged:
            raise CoherentEdgeError(f"Coherent edge search did not converge: {result.flag}")

        return OrientationSolution(
            thetax=float(thetax),
            thetay=thetay,
            thetaz=thetaz,
            edge_energy=float(Epeak),
            x_edge=x_edge,
            iterations=result.iterations,
        )

    def set_coherent_edge(self, Epeak: float) -> OrientationSolution:
        """Solve for and apply the orientation placing the edge at ``Epeak``."""
        solution = self.solve_coherent_edge(Epeak)
        self._orientation.set_angles(solution.thetax, solution.thetay, solution.thetaz)
        self._lattices = {}
        logger.info(
            f"Coherent edge at {Epeak:.4g} GeV (x={solution.x_edge:.4f}): "
            f"thetax={solution.thetax:.6g} rad after {solution.iterations} iterations"
        )
        return solution

    @property
    def coherent_edge(self) -> float:
        """Photon energy of the primary coherent edge in the current orientation, GeV."""
        q_long, _ = primary_geometry(primary_vector(self._species), self._orientation.matrix)
        if q_long <= 0:
            return 0.0
        return self._beamline.beam_energy * rates.edge_fraction(q_long, self._beamline.beam_energy)

    @property
    def polarization_plane(self) -> float:
        """Beam-frame azimuth of the primary vector's transverse component, rad."""
        beam = self._orientation.matrix @ primary_vector(self._species)
        return float(np.arctan2(beam[1], beam[0]))

    # ------------------------------------------------------------------
    # Multiple scattering
    # ------------------------------------------------------------------

    def _thickness(self, thickness: Optional[float]) -> float:
        if thickness is None:
            return self._beamline.target_thickness
        return check_positive("thickness", thickness)

    def sigma2ms(self, thickness: Optional[float] = None) -> float:
        """Default mean-square projected scattering angle (GEANT form), rad^2."""
        return scattering.sigma2ms(
            self._thickness(thickness), self._species.radiation_length, self.beam_energy
        )

    def sigma2ms_pdg(self, thickness: Optional[float] = None) -> float:
        return scattering.sigma2ms_pdg(
            self._thickness(thickness), self._species.radiation_length, self.beam_energy
        )

    def sigma2ms_geant(self, thickness: Optional[float] = None) -> float:
        return scattering.sigma2ms_geant(
            self._thickness(thickness), self._species.radiation_length, self.beam_energy
        )

    def sigma2ms_kaune(self, thickness: Optional[float] = None) -> float:
        return scattering.sigma2ms_kaune(
            self._thickness(thickness), self._species.radiation_length, self.beam_energy
        )

    def sigma2ms_hanson(self, thickness: Optional[float] = None) -> float:
        s = self._species
        return scattering.sigma2ms_hanson(
            self._thickness(thickness), s.Z, s.A, s.density, self.beam_energy
        )

    # ------------------------------------------------------------------
    # Acceptance
    # ------------------------------------------------------------------

    def _geometry(self, override: Optional[CollimatorOverride]):
        """(distance, diameter) of the collimator in effect, or None if uncollimated."""
        if override is not None:
            return override.distance, override.diameter
        if self.collimated_flux:
            return self._beamline.collimator_distance, self._beamline.collimator_diameter
        return None

    def _accept(self, theta2, phi, geometry, xshift=0.0, yshift=0.0):
        distance, diameter = geometry
        sigma = landing_spread(self._beamline.collimator_spotrms, distance, self.sigma2ms())
        return collimator_acceptance(theta2, phi, distance, diameter, sigma, xshift, yshift)

    def acceptance(
        self,
        theta2,
        phi=0.0,
        xshift: float = 0.0,
        yshift: float = 0.0,
        override: Optional[CollimatorOverride] = None,
    ):
        """
        Probability that a photon emitted at (theta, phi) passes the collimator.

        Parameters
        ----------
        theta2 : float or array
            Squared emission angle, rad^2
        phi : float or array
            Emission azimuth, rad
        xshift, yshift : float
            Offset of the collimator centre from the beam axis, m
        override : CollimatorOverride, optional
            Collimator geometry to use instead of the stored one

        Returns
        -------
        float or array
            Acceptance in [0, 1]
        """
        rates.check_theta2(theta2)
        if override is not None:
            geometry = (override.distance, override.diameter)
        else:
            geometry = (self._beamline.collimator_distance, self._beamline.collimator_diameter)
        return self._accept(theta2, phi, geometry, xshift, yshift)

    # ------------------------------------------------------------------
    # Coherent rates
    # ------------------------------------------------------------------

    def _oriented_lattice(self, hmax: int) -> OrientedLattice:
        lattice = self._lattices.get(hmax)
        if lattice is None:
            table = reciprocal_lattice(self._species, hmax)
            lattice = orient_lattice(
                table, self._orientation.matrix, self._species.betaFF, self.debye_waller_constant
            )
            self._lattices[hmax] = lattice
        return lattice

    def _coherent_prefactor(self) -> float:
        s = self._species
        areal_density = s.atom_density * self._beamline.target_thickness
        cross_section = 2 * ALPHA * s.Z**2 * R_E**2 / DPI
        return areal_density * cross_section * (2 * DPI) ** 3 / (s.nsites * s.cell_volume)

    @property
    def last_lattice_sum(self) -> Optional[LatticeSumRecord]:
        """Record of the most recent lattice sum, for diagnostics."""
        return self._last_lattice_sum

    def _converged_sum(
        self, x: float, weigh=None, geometry=None, tolerance: float = LATTICE_SUM_TOLERANCE
    ):
        """
        Run the lattice sum over the cutoff schedule and remember its record.

        The outer-shell tail is judged against the summed weights plus the
        unpolarized incoherent rate through the same collimator geometry.
        """
        x = _scalar_x(x)
        try:
            record, weights = converged_lattice_sum(
                x,
                self._beamline.beam_energy,
                self._oriented_lattice,
                self._coherent_prefactor(),
                self._cutoffs,
                weigh=weigh,
                reference=self._incoherent_rate(x, 1.0, geometry),
                tolerance=tolerance,
            )
        except LatticeSumConvergenceError as exc:
            self._last_lattice_sum = exc.record
            raise
        self._last_lattice_sum = record
        return record, weights

    def _with_acceptance(self, project, geometry):
        """Per-vector weights ``project(record)``, times the acceptance when collimated."""
        if geometry is None:
            return project

        def weigh(record):
            weights = project(record)
            if len(record):
                weights = weights * self._accept(record.theta2, record.phi, geometry)
            return weights

        return weigh

    def lattice_sum(self, x: float, tolerance: float = LATTICE_SUM_TOLERANCE) -> LatticeSumRecord:
        """
        Evaluate the uncollimated coherent lattice sum at ``x`` and return its record.

        The cutoff grows from :attr:`hmax` to :attr:`hmax_limit` until the two
        outermost index shells carry at most ``tolerance`` of the coherent
        plus incoherent rate.

        Raises
        ------
        InvalidKinematicsError
            If x is outside (0, 1)
        LatticeSumConvergenceError
            If the tail still exceeds ``tolerance`` at :attr:`hmax_limit`
        """
        record, _ = self._converged_sum(x, tolerance=tolerance)
        return record

    def rate_dNcdx(self, x: float, override: Optional[CollimatorOverride] = None) -> float:
        """
        Coherent photon rate dN/dx per electron.

        With the polarized-flux flag set, the linearly polarized part
        projected on the primary polarization plane is returned instead.
        """
        if self.polarized_flux:
            plane = self.polarization_plane

            def project(record):
                return record.polarization * np.cos(2 * (record.phi - plane))

        else:

            def project(record):
                return record.weight

        geometry = self._geometry(override)
        _, weights = self._converged_sum(x, self._with_acceptance(project, geometry), geometry)
        return float(np.sum(weights))

    def rate_dNcdxdp(
        self, x: float, phi: float, override: Optional[CollimatorOverride] = None
    ) -> float:
        """
        Coherent rate per unit x and per unit azimuth ``phi`` of the photon
        polarization plane. Integrates over phi to :meth:`rate_dNcdx`.
        """

        def project(record):
            return record.weight + record.polarization * np.cos(2 * (phi - record.phi))

        geometry = self._geometry(override)
        _, density = self._converged_sum(x, self._with_acceptance(project, geometry), geometry)
        return float(np.sum(density) / (2 * DPI))

    # ------------------------------------------------------------------
    # Incoherent rates
    # ------------------------------------------------------------------

    def _thickness_in_X0(self) -> float:
        return self._beamline.target_thickness / self._species.radiation_length

    def _incoherent(self, x, share: float, override: Optional[CollimatorOverride]):
        return self._incoherent_rate(_checked_x(x), share, self._geometry(override))

    def _incoherent_rate(self, x, share: float, geometry):
        prefactor = self._thickness_in_X0() * share / x
        if geometry is None:
            return _as_output(prefactor * rates.complete_screening_spectrum(x))

        theta2 = rates.u2_from_t(rates.T_NODES) * (ME / self._beamline.beam_energy) ** 2
        weights = rates.T_WEIGHTS * self._accept(theta2, 0.0, geometry)
        integral = rates.angular_integrand_t(np.asarray(x)[..., None], rates.T_NODES) @ weights
        return _as_output(prefactor * integral)

    @property
    def nuclear_share(self) -> float:
        Z = self._species.Z
        return Z / (Z + 1)

    def rate_dNidx(self, x, override: Optional[CollimatorOverride] = None):
        """Incoherent rate from the screened nuclei, dN/dx per electron."""
        if self.polarized_flux:
            return _zero_like(_checked_x(x))
        return self._incoherent(x, self.nuclear_share, override)

    def rate_dNBidx(self, x, override: Optional[CollimatorOverride] = None):
        """Incoherent rate from the atomic electrons, dN/dx per electron."""
        if self.polarized_flux:
            return _zero_like(_checked_x(x))
        return self._incoherent(x, 1 - self.nuclear_share, override)

    def _angular_prefactor(self, x):
        E = self._beamline.beam_energy
        return self._thickness_in_X0() * self.nuclear_share / x * (E / ME) ** 2

    def rate_dNidxdt2(self, x, theta2):
        """Nuclear incoherent rate per unit x and per unit theta^2 (rad^-2)."""
        x = _checked_x(x)
        rates.check_theta2(theta2)
        if self.polarized_flux:
            return _zero_like(np.broadcast_arrays(x, theta2)[0])
        u2 = rates.reduced_angle2(theta2, self._beamline.beam_energy)
        return _as_output(self._angular_prefactor(x) * rates.angular_shape(x, u2))

    def _polarization_split(self, x, theta2, phi):
        x = _checked_x(x)
        rates.check_theta2(theta2)
        u2 = rates.reduced_angle2(theta2, self._beamline.beam_energy)
        para, ortho = rates.polarization_components(x, u2, phi)
        scale = self._angular_prefactor(x) / (2 * DPI)
        return scale * para, scale * ortho

    def rate_para(self, x, theta2, phi):
        """Nuclear incoherent rate per unit x, theta^2 and phi, polarized in the reference plane."""
        para, _ = self._polarization_split(x, theta2, phi)
        return _as_output(para)

    def rate_ortho(self, x, theta2, phi):
        """As :meth:`rate_para`, polarized orthogonal to the reference plane."""
        _, ortho = self._polarization_split(x, theta2, phi)
        return _as_output(ortho)

    def polarization(self, x, theta2):
        """
        Degree of linear polarization (para - ortho) / (para + ortho) at phi = 0.

        Raises
        ------
        NumericalGuardError
            If para + ortho vanishes
        """
        x = _checked_x(x)
        rates.check_theta2(theta2)
        u2 = rates.reduced_angle2(theta2, self._beamline.beam_energy)
        para, ortho = rates.polarization_components(x, u2, 0.0)
        total = para + ortho
        if np.any(total < EPSILON):
            raise NumericalGuardError(f"Polarization undefined at x={x}, theta2={theta2}")
        return _as_output((para - ortho) / total)

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def rate_dNtdx(self, x: float, override: Optional[CollimatorOverride] = None) -> float:
        """Total photon rate dN/dx per electron: coherent plus both incoherent parts."""
        return (
            self.rate_dNcdx(x, override)
            + self.rate_dNidx(x, override)
            + self.rate_dNBidx(x, override)
        )

    def rate_dNtdk(self, k: float, override: Optional[CollimatorOverride] = None) -> float:
        """Total photon rate per unit photon energy, GeV^-1."""
        energy = self._beamline.beam_energy
        if not 0 < k < energy:
            raise InvalidKinematicsError(
                f"Photon energy must lie in (0, {energy}) GeV, got {k}"
            )
        return self.rate_dNtdx(k / energy, override) / energy

    def coherent_enhancement(self, x: float, override: Optional[CollimatorOverride] = None) -> float:
        """
        Total over purely incoherent rate at ``x``; always unpolarized.

        Raises
        ------
        NumericalGuardError
            If the incoherent rate vanishes
        """
        polarized = self.polarized_flux
        self.polarized_flux = False
        try:
            coherent = self.rate_dNcdx(x, override)
            incoherent = self.rate_dNidx(x, override) + self.rate_dNBidx(x, override)
        finally:
            self.polarized_flux = polarized
        return _enhancement(x, coherent, incoherent)

    # ------------------------------------------------------------------
    # Convolution
    # ------------------------------------------------------------------

    def apply_beam_crystal_convolution(self, xvalues, yvalues, nbins: Optional[int] = None):
        """
        Smear a rate curve by the beam angular spread, in place.

        The first ``nbins`` entries of ``yvalues`` (all of them by default)
        are replaced by their convolution with a Gaussian in ln(x/(1-x)) of
        width sigma_theta / theta_tilt, where sigma_theta is
        :meth:`edge_angular_spread` and theta_tilt is the primary vector's
        g_L / g_T. ``xvalues`` is not modified.

        Returns
        -------
        yvalues
            The same sequence, updated
        """
        if nbins is None:
            nbins = len(xvalues)
        if nbins > len(xvalues) or nbins > len(yvalues) or nbins < 1:
            raise InvalidConfigurationError(
                f"nbins={nbins} does not fit grids of length {len(xvalues)}, {len(yvalues)}"
            )
        x = np.asarray(xvalues[:nbins], dtype=float)
        y = np.asarray(yvalues[:nbins], dtype=float)

        smeared = smear_log_edge(x, y, self._edge_smearing_width())
        yvalues[:nbins] = smeared
        return yvalues

    def edge_angular_spread(self) -> float:
        """
        RMS angular spread of the beam relative to the crystal planes, rad.

        Beam divergence (emittance / spot), crystal mosaic spread and
        multiple scattering in the radiator, added in quadrature.

        Raises
        ------
        InvalidConfigurationError
            If the emittance is nonzero but the beam spot is zero
        """
        emittance = self._beamline.beam_emittance
        variance = self._species.mosaic_spread**2 + self.sigma2ms()
        if emittance > 0:
            spot = self._beamline.collimator_spotrms
            if spot == 0:
                raise InvalidConfigurationError("Nonzero beam emittance needs a nonzero beam spot")
            variance += (emittance / spot) ** 2
        return float(np.sqrt(variance))

    def _edge_smearing_width(self) -> float:
        sigma_theta = self.edge_angular_spread()
        if sigma_theta == 0:
            return 0.0

        q_long, q_trans = primary_geometry(primary_vector(self._species), self._orientation.matrix)
        if q_long <= 0 or q_trans == 0:
            raise InvalidConfigurationError(
                "Primary reciprocal vector has no forward tilt; cannot smear its edge"
            )
        return sigma_theta / (q_long / q_trans)

    # ------------------------------------------------------------------
    # Tables and copies
    # ------------------------------------------------------------------

    def spectrum_table(self, xvalues, override: Optional[CollimatorOverride] = None) -> pd.DataFrame:
        """
        Rates on a grid of energy fractions.

        The enhancement column is always unpolarized. Without the
        polarized-flux flag it comes from the row's own rates, so each row
        costs one lattice sum.

        Returns
        -------
        DataFrame
            Columns x, k_GeV, dNtdx, dNcdx, dNidx, dNBidx, enhancement
        """
        energy = self._beamline.beam_energy
        rows = []
        for x in np.asarray(xvalues, dtype=float):
            dNc = self.rate_dNcdx(x, override)
            dNi = self.rate_dNidx(x, override)
            dNBi = self.rate_dNBidx(x, override)
            if self.polarized_flux:
                enhancement = self.coherent_enhancement(x, override)
            else:
                enhancement = _enhancement(x, dNc, dNi + dNBi)
            rows.append(
                {
                    "x": x,
                    "k_GeV": x * energy,
                    "dNtdx": dNc + dNi + dNBi,
                    "dNcdx": dNc,
                    "dNidx": dNi,
                    "dNBidx": dNBi,
                    "enhancement": enhancement,
                }
            )
        logger.debug(f"Computed spectrum table with {len(rows)} rows")
        return pd.DataFrame(rows, columns=SPECTRUM_COLUMNS)

    def clone(self) -> "RadiatorModel":
        """Fully independent copy for use by another worker."""
        return copy.deepcopy(self)

    def __copy__(self) -> "RadiatorModel":
        return self.clone()

    def __deepcopy__(self, memo) -> "RadiatorModel":
        clone = self.__class__.__new__(self.__class__)
        memo[id(self)] = clone
        for key, value in self.__dict__.items():
            if key == "_lattices":
                # rebuilt lazily; avoids copying the shared lattice tables
                clone._lattices = {}
            else:
                setattr(clone, key, copy.deepcopy(value, memo))
        return clone

    def __repr__(self) -> str:
        return (
            f"RadiatorModel(E={self.beam_energy:.4g} GeV, crystal={self.target_crystal}, "
            f"edge={self.coherent_edge:.4g} GeV)"
        )

    def print_beamline_info(self) -> str:
        from cobrems.generator.report import beamline_report

        text = beamline_report(self)
        logger.info(text)
        return text

    def print_target_crystal_info(self) -> str:
        from cobrems.generator.report import crystal_report

        text = crystal_report(self)
        logger.info(text)
        return text


SPECTRUM_COLUMNS = ["x", "k_GeV", "dNtdx", "dNcdx", "dNidx", "dNBidx", "enhancement"]


def _enhancement(x, coherent: float, incoherent: float) -> float:
    if incoherent < EPSILON:
        raise NumericalGuardError(f"Incoherent rate vanishes at x={x}")
    return (coherent + incoherent) / incoherent


def _scalar_x(x) -> float:
    if np.ndim(x) != 0:
        raise InvalidKinematicsError("Coherent rates take a single x value")
    rates.check_x(x)
    return float(x)


def _checked_x(x):
    rates.check_x(x)
    if np.ndim(x) == 0:
        return float(x)
    return np.asarray(x, dtype=float)


def _as_output(value):
    if np.ndim(value) == 0:
        return float(value)
    return value


def _zero_like(x):
    if np.ndim(x) == 0:
        return 0.0
    return np.zeros(np.shape(x))
