"""
Tests for closed-form bremsstrahlung kernels.
"""

import numpy as np
import pytest
from scipy import integrate

from cobrems.core.constants import ME
from cobrems.core.exceptions import InvalidKinematicsError
from cobrems.generator import rates


@pytest.mark.parametrize("x", [0.1, 0.5, 0.75, 0.95])
def test_angular_shape_integrates_to_complete_screening(x):
    """Integral of F over u^2 is (4/3)(1 - x) + x^2."""
    value, _ = integrate.quad(lambda u2: rates.angular_shape(x, u2), 0, np.inf)
    assert value == pytest.approx(rates.complete_screening_spectrum(x), rel=1e-8)


@pytest.mark.parametrize("x", [0.2, 0.75])
def test_gauss_legendre_rule_exact(x):
    """The t-substituted integrand is a polynomial the rule integrates exactly."""
    value = np.sum(rates.T_WEIGHTS * rates.angular_integrand_t(x, rates.T_NODES))
    assert value == pytest.approx(rates.complete_screening_spectrum(x), rel=1e-13)


def test_polarization_components_sum():
    """Parallel and orthogonal parts add up to F for every azimuth."""
    x = 0.6
    u2 = np.linspace(0, 5, 11)
    for phi in (0.0, 0.4, np.pi / 2):
        para, ortho = rates.polarization_components(x, u2, phi)
        np.testing.assert_allclose(para + ortho, rates.angular_shape(x, u2), rtol=1e-14)


def test_polarization_components_forward():
    """No preferred plane for forward emission."""
    para, ortho = rates.polarization_components(0.4, 0.0, 0.3)
    assert para == pytest.approx(ortho)


def test_polarized_shape_bounded():
    """The polarized part never exceeds the unpolarized one."""
    x = np.linspace(0.01, 0.99, 50)[:, None]
    u2 = np.logspace(-4, 4, 200)[None, :]
    polarized = rates.polarized_shape(x, u2)
    unpolarized = rates.angular_shape(x, u2)
    assert np.all(polarized >= 0)
    assert np.all(polarized <= unpolarized)


def test_polarized_shape_at_edge():
    """At u = 0 the degree of polarization is 2y / (1 + y^2)."""
    x = 0.75
    y = 1 - x
    ratio = rates.polarized_shape(x, 0.0) / rates.angular_shape(x, 0.0)
    assert ratio == pytest.approx(2 * y / (1 + y**2))


def test_min_momentum_transfer_and_edge_fraction():
    """edge_fraction inverts min_momentum_transfer."""
    energy = 12.0
    for x in (0.1, 0.5, 0.75, 0.9):
        delta = rates.min_momentum_transfer(x, energy)
        assert rates.edge_fraction(delta, energy) == pytest.approx(x, rel=1e-12)
    assert rates.min_momentum_transfer(0.5, energy) == pytest.approx(ME**2 / (2 * energy))


def test_reduced_angle():
    """u = 1 at the characteristic angle m_e / E."""
    assert rates.reduced_angle2((ME / 9.0) ** 2, 9.0) == pytest.approx(1.0)


def test_u2_from_t():
    np.testing.assert_allclose(rates.u2_from_t(np.array([0.0, 0.5, 0.75])), [0.0, 1.0, 3.0])


@pytest.mark.parametrize("x", [0.0, 1.0, -0.2, 1.5, np.nan])
def test_check_x_rejects(x):
    with pytest.raises(InvalidKinematicsError):
        rates.check_x(x)


def test_check_x_arrays():
    rates.check_x(np.array([0.1, 0.9]))
    with pytest.raises(InvalidKinematicsError):
        rates.check_x(np.array([0.1, 1.0]))


def test_check_theta2_rejects_negative():
    rates.check_theta2(0.0)
    with pytest.raises(InvalidKinematicsError):
        rates.check_theta2(np.array([1e-10, -1e-12]))
