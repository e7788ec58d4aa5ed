"""
Beamline configuration: electron beam, radiator thickness and collimator.

Defaults describe a tagged-photon beamline in the style of Hall D at
Jefferson Lab: a thin diamond radiator followed 76 m downstream by a
3.4 mm collimator, with the electron beam focused onto the collimator.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cobrems.core.exceptions import InvalidConfigurationError
from cobrems.core.logging_config import get_logger

logger = get_logger("beamline.config")


@dataclass
class BeamlineConfig:
    """
    Electron beam, radiator and collimator parameters.

    Attributes
    ----------
    beam_energy : float
        Electron beam energy in GeV
    beam_erms : float
        RMS beam energy spread in GeV
    beam_emittance : float
        Transverse beam emittance in m rad
    collimator_spotrms : float
        RMS electron beam spot size at the collimator in m
    collimator_distance : float
        Radiator to collimator distance in m
    collimator_diameter : float
        Collimator aperture diameter in m
    target_thickness : float
        Radiator thickness in m
    target_temperature : float, optional
        Radiator temperature in K. When set, the Debye-Waller constant is
        computed from the species' Debye temperature instead of using the
        tabulated value.
    """

    beam_energy: float
    beam_erms: float = 6e-4
    beam_emittance: float = 2.5e-9
    collimator_spotrms: float = 5e-4
    collimator_distance: float = 76.0
    collimator_diameter: float = 3.4e-3
    target_thickness: float = 20e-6
    target_temperature: Optional[float] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> bool:
        """
        Validate beamline parameters.

        Returns
        -------
        bool
            True if valid

        Raises
        ------
        InvalidConfigurationError
            If any parameter is out of range
        """
        for name in ("beam_energy", "collimator_distance", "collimator_diameter", "target_thickness"):
            check_positive(name, getattr(self, name))
        for name in ("beam_erms", "beam_emittance", "collimator_spotrms"):
            check_non_negative(name, getattr(self, name))
        if self.target_temperature is not None:
            check_positive("target_temperature", self.target_temperature)
        return True

    @property
    def collimator_radius(self) -> float:
        return self.collimator_diameter / 2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, beamline: Dict[str, Any]) -> "BeamlineConfig":
        """Build from the ``beamline`` section of a configuration dict."""
        fields = {name: beamline[name] for name in cls.__dataclass_fields__ if name in beamline}
        return cls(**fields)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "BeamlineConfig":
        """
        Load beamline configuration from a YAML/JSON file.

        Parameters
        ----------
        config_path : str or Path
            Path to configuration file

        Returns
        -------
        BeamlineConfig
            Configuration instance
        """
        from cobrems.core.config import load_config, validate_beamline_config

        config = load_config(config_path)
        validate_beamline_config(config)
        return cls.from_dict(config["beamline"])


@dataclass(frozen=True)
class CollimatorOverride:
    """
    Collimator geometry that takes precedence over the stored configuration
    for a single rate evaluation.

    Passing an override always evaluates the collimated rate, whatever the
    collimated-flux flag says. The stored configuration is left untouched.

    Attributes
    ----------
    distance : float
        Radiator to collimator distance in m
    diameter : float
        Aperture diameter in m
    """

    distance: float
    diameter: float

    def __post_init__(self):
        check_positive("collimator distance", self.distance)
        check_positive("collimator diameter", self.diameter)


def check_positive(name: str, value: float) -> float:
    if not value > 0:
        raise InvalidConfigurationError(f"{name} must be positive, got {value}")
    return value


def check_non_negative(name: str, value: float) -> float:
    if not value >= 0:
        raise InvalidConfigurationError(f"{name} must be non-negative, got {value}")
    return value
