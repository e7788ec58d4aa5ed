"""
Pytest configuration and shared fixtures for cobrems tests.

This module provides:
- A default 12 GeV beam / 9 GeV coherent edge diamond radiator
- Sample configuration dictionaries and temporary config files
- A non-uniform x grid for convolution tests
"""

import logging
import os
import tempfile
from pathlib import Path

import numpy as np
import pytest

from cobrems.core.logging_config import ROOT_LOGGER_NAME
from cobrems.generator.radiator import RadiatorModel


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging so records keep propagating to caplog."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    root.propagate = propagate


@pytest.fixture(scope="session")
def base_model():
    """Radiator model shared by the whole session; never mutate it."""
    return RadiatorModel(12.0, 9.0)


@pytest.fixture
def model(base_model):
    """Independent 12 GeV / 9 GeV diamond radiator model."""
    return base_model.clone()


@pytest.fixture
def uncollimated_model(model):
    model.collimated_flux = False
    return model


@pytest.fixture
def sample_config_dict():
    """Create a sample configuration dictionary."""
    return {
        "beamline": {
            "beam_energy": 12.0,
            "coherent_edge": 9.0,
            "crystal": "diamond",
            "beam_emittance": 2.5e-9,
            "collimator_spotrms": 5e-4,
            "collimator_distance": 76.0,
            "collimator_diameter": 3.4e-3,
            "target_thickness": 20e-6,
            "collimated_flux": True,
            "polarized_flux": False,
        },
    }


@pytest.fixture
def sample_crystal_entry():
    """Fields of a custom species (cold diamond) for the 'crystals' section."""
    return {
        "Z": 6,
        "A": 12.01,
        "density": 3.534,
        "lattice_constant": 3.5668e-10,
        "debye_waller_const": 3.0e8,
        "mosaic_spread": 0.0,
        "betaFF": 2.85e10,
        "ucell_sites": [
            [0.0, 0.0, 0.0],
            [0.5, 0.5, 0.0],
            [0.5, 0.0, 0.5],
            [0.0, 0.5, 0.5],
            [0.25, 0.25, 0.25],
            [0.25, 0.75, 0.75],
            [0.75, 0.25, 0.75],
            [0.75, 0.75, 0.25],
        ],
        "primary_hkl": [2, 2, 0],
        "debye_temperature": 2220.0,
    }


@pytest.fixture
def temp_config_file(sample_config_dict):
    """Create a temporary YAML config file."""
    import yaml

    config_fd, config_path = tempfile.mkstemp(suffix=".yaml")
    os.close(config_fd)  # Close file descriptor to prevent leaks

    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)

    yield config_path

    Path(config_path).unlink()


@pytest.fixture
def nonuniform_grid():
    """Strictly increasing, unevenly spaced x grid inside (0, 1)."""
    coarse = np.linspace(0.05, 0.7, 40)
    fine = np.linspace(0.702, 0.8, 120)
    tail = np.linspace(0.81, 0.95, 30)
    return np.concatenate([coarse, fine, tail])
