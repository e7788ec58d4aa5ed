"""
Tests for physical constants module.
"""

import pytest
from cobrems.core import constants


def test_constants_exist():
    """Test that all expected constants are defined."""
    for name in ("DPI", "ME", "ALPHA", "HBARC", "R_E", "AVOGADRO", "KB_GEV", "AMU_GEV", "EPSILON"):
        assert hasattr(constants, name)


def test_constant_values():
    """Test that constants have reasonable values."""
    assert constants.ME == pytest.approx(0.511e-3, rel=1e-3)
    assert 1 / constants.ALPHA == pytest.approx(137.036, rel=1e-5)
    assert constants.HBARC == pytest.approx(0.1973e-15, rel=1e-3)


def test_classical_electron_radius():
    """r_e = alpha hbar c / m_e is 2.818 fm."""
    assert constants.R_E == pytest.approx(2.8179403e-15, rel=1e-6)


def test_edge_tolerance_small():
    """Edge slack is tiny compared with any physical scale."""
    assert 0 < constants.EDGE_TOLERANCE < 1e-6
    assert constants.EPSILON < 1e-15
