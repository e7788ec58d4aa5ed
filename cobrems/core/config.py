"""
Configuration management for cobrems.

Provides utilities for loading and validating YAML/JSON configuration files
describing the beamline, the radiator orientation and custom crystal species.
"""

import json
from pathlib import Path
from typing import Dict, Any, Union

import yaml

from cobrems.core.exceptions import InvalidConfigurationError
from cobrems.core.logging_config import get_logger

logger = get_logger("core.config")

# Fields accepted in the 'beamline' section and whether they must be > 0
# (True) or >= 0 (False)
BEAMLINE_FIELDS = {
    "beam_energy": True,
    "beam_erms": False,
    "beam_emittance": False,
    "collimator_spotrms": False,
    "collimator_distance": True,
    "collimator_diameter": True,
    "target_thickness": True,
    "target_temperature": True,
}

CRYSTAL_REQUIRED_FIELDS = [
    "Z",
    "A",
    "density",
    "lattice_constant",
    "debye_waller_const",
    "mosaic_spread",
    "betaFF",
    "ucell_sites",
    "primary_hkl",
]


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters
    ----------
    config_path : str or Path
        Path to configuration file (.yaml, .yml, or .json)

    Returns
    -------
    dict
        Configuration dictionary

    Raises
    ------
    FileNotFoundError
        If config file does not exist
    ValueError
        If file format is not supported
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    suffix = config_path.suffix.lower()

    with open(config_path, "r") as f:
        if suffix in [".yaml", ".yml"]:
            config = yaml.safe_load(f)
        elif suffix == ".json":
            config = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. " "Use .yaml, .yml, or .json"
            )

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    logger.info(f"Loaded configuration from {config_path}")
    return config


def validate_beamline_config(config: Dict[str, Any]) -> bool:
    """
    Validate beamline configuration structure.

    Parameters
    ----------
    config : dict
        Configuration dictionary

    Returns
    -------
    bool
        True if valid

    Raises
    ------
    InvalidConfigurationError
        If configuration is invalid
    """
    if "beamline" not in config:
        raise InvalidConfigurationError("Configuration must contain 'beamline' section")

    beamline = config["beamline"]
    if not isinstance(beamline, dict):
        raise InvalidConfigurationError("'beamline' section must be a mapping")

    if "beam_energy" not in beamline:
        raise InvalidConfigurationError("Beamline config missing required field: beam_energy")

    for field, strictly_positive in BEAMLINE_FIELDS.items():
        if field not in beamline or beamline[field] is None:
            continue
        value = beamline[field]
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise InvalidConfigurationError(f"Beamline field '{field}' must be a number")
        if strictly_positive and value <= 0:
            raise InvalidConfigurationError(f"Beamline field '{field}' must be positive")
        if not strictly_positive and value < 0:
            raise InvalidConfigurationError(f"Beamline field '{field}' must be non-negative")

    edge = beamline.get("coherent_edge")
    if edge is not None and not 0 < edge < beamline["beam_energy"]:
        raise InvalidConfigurationError(
            f"coherent_edge must lie between 0 and beam_energy, got {edge}"
        )

    return True


def validate_crystal_config(config: Dict[str, Any]) -> bool:
    """
    Validate the optional 'crystals' section.

    Each entry maps a species name to its physical parameters; see
    ``cobrems.crystal.species.CrystalSpecies`` for the field meanings.

    Raises
    ------
    InvalidConfigurationError
        If any entry is malformed
    """
    crystals = config.get("crystals", {})
    if not isinstance(crystals, dict):
        raise InvalidConfigurationError("'crystals' section must be a mapping of name -> fields")

    for name, fields in crystals.items():
        if not isinstance(fields, dict):
            raise InvalidConfigurationError(f"Crystal '{name}' must be a mapping")
        for field in CRYSTAL_REQUIRED_FIELDS:
            if field not in fields:
                raise InvalidConfigurationError(
                    f"Crystal '{name}' missing required field: {field}"
                )
        if not fields["ucell_sites"]:
            raise InvalidConfigurationError(f"Crystal '{name}' needs at least one unit-cell site")
        if len(fields["primary_hkl"]) != 3:
            raise InvalidConfigurationError(f"Crystal '{name}' primary_hkl must have 3 indices")

    return True


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> Path:
    """
    Save configuration to YAML or JSON file.

    Parameters
    ----------
    config : dict
        Configuration dictionary
    config_path : str or Path
        Path to output file. Unknown suffixes are written as YAML with the
        suffix replaced.

    Returns
    -------
    Path
        Path actually written
    """
    config_path = Path(config_path)
    suffix = config_path.suffix.lower()

    if suffix not in [".yaml", ".yml", ".json"]:
        config_path = config_path.with_suffix(".yaml")
        suffix = ".yaml"

    with open(config_path, "w") as f:
        if suffix == ".json":
            json.dump(config, f, indent=2)
        else:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved configuration to {config_path}")
    return config_path
