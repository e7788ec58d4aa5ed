"""
Tests for collimator acceptance.
"""

import numpy as np
import pytest
from scipy import integrate

from cobrems.beamline.acceptance import collimator_acceptance, landing_spread
from cobrems.beamline.config import CollimatorOverride
from cobrems.core.exceptions import InvalidConfigurationError, InvalidKinematicsError


def test_sharp_edge():
    """Without smearing the acceptance is an indicator of the aperture."""
    radius_angle2 = (1.7e-3 / 76.0) ** 2
    assert collimator_acceptance(0.25 * radius_angle2, 0.0, 76.0, 3.4e-3, 0.0) == 1.0
    assert collimator_acceptance(4.0 * radius_angle2, 0.0, 76.0, 3.4e-3, 0.0) == 0.0


def test_acceptance_on_axis():
    """On axis the Rice CDF reduces to a Rayleigh CDF."""
    sigma, radius = 5e-4, 1.7e-3
    expected = 1 - np.exp(-(radius**2) / (2 * sigma**2))
    assert collimator_acceptance(0.0, 0.0, 76.0, 2 * radius, sigma) == pytest.approx(expected)


def test_acceptance_matches_2d_integral():
    """The closed form equals the Gaussian-disc overlap integral."""
    theta2, phi = (1.5e-5) ** 2, 0.3
    distance, diameter, sigma = 76.0, 3.4e-3, 6e-4
    radius = diameter / 2
    cx = distance * np.sqrt(theta2) * np.cos(phi)
    cy = distance * np.sqrt(theta2) * np.sin(phi)

    def density(y, x):
        return np.exp(-((x - cx) ** 2 + (y - cy) ** 2) / (2 * sigma**2)) / (2 * np.pi * sigma**2)

    overlap, _ = integrate.dblquad(
        density,
        -radius,
        radius,
        lambda x: -np.sqrt(radius**2 - x**2),
        lambda x: np.sqrt(radius**2 - x**2),
        epsabs=1e-10,
    )
    result = collimator_acceptance(theta2, phi, distance, diameter, sigma)
    assert result == pytest.approx(overlap, abs=1e-6)


def test_acceptance_vectorized_and_monotonic():
    """Acceptance falls with angle and stays within [0, 1]."""
    theta2 = np.linspace(0, (1e-4) ** 2, 50)
    result = collimator_acceptance(theta2, 0.0, 76.0, 3.4e-3, 5e-4)
    assert result.shape == theta2.shape
    assert np.all((result >= 0) & (result <= 1))
    assert np.all(np.diff(result) <= 1e-15)


def test_shift_symmetry():
    """Shifting the aperture towards the photon helps."""
    theta2 = (2e-5) ** 2
    centred = collimator_acceptance(theta2, 0.0, 76.0, 3.4e-3, 5e-4)
    toward = collimator_acceptance(theta2, 0.0, 76.0, 3.4e-3, 5e-4, xshift=1e-3)
    away = collimator_acceptance(theta2, 0.0, 76.0, 3.4e-3, 5e-4, xshift=-1e-3)
    assert away < centred < toward


def test_landing_spread():
    assert landing_spread(5e-4, 76.0, 0.0) == pytest.approx(5e-4)
    assert landing_spread(0.0, 10.0, 2e-10) == pytest.approx(10.0 * 1e-5)


def test_model_acceptance_defaults(model):
    """The model uses the stored collimator and beam spot."""
    assert 0 < model.acceptance(0.0) <= 1
    assert model.acceptance(0.0) > model.acceptance((3e-5) ** 2)


def test_model_acceptance_override(model):
    """A wider override accepts more and leaves the stored geometry alone."""
    theta2 = (2.5e-5) ** 2
    stored = model.acceptance(theta2)
    wider = model.acceptance(theta2, override=CollimatorOverride(76.0, 5e-3))
    assert wider > stored
    assert model.collimator_diameter == pytest.approx(3.4e-3)


def test_model_acceptance_rejects_negative_theta2(model):
    with pytest.raises(InvalidKinematicsError):
        model.acceptance(-1e-10)


def test_override_validation():
    """Override geometry must be positive."""
    with pytest.raises(InvalidConfigurationError):
        CollimatorOverride(0.0, 3.4e-3)
    with pytest.raises(InvalidConfigurationError):
        CollimatorOverride(76.0, -1.0)
