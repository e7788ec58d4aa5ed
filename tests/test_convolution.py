"""
Tests for the beam-crystal smearing convolution.
"""

import numpy as np
import pytest

from cobrems.beamline.convolution import bin_edges, check_grid, smear_log_edge
from cobrems.core.exceptions import InvalidConfigurationError
from cobrems.crystal.species import CrystalTable
from cobrems.generator.radiator import RadiatorModel


def _integral(x, y):
    return float(np.sum(y * np.diff(bin_edges(x))))


def test_bin_edges_uniform():
    x = np.array([0.1, 0.2, 0.3])
    np.testing.assert_allclose(bin_edges(x), [0.05, 0.15, 0.25, 0.35])


def test_check_grid_errors():
    """Malformed grids are rejected."""
    with pytest.raises(InvalidConfigurationError, match="length"):
        check_grid(np.array([0.1, 0.2]), np.array([1.0]))
    with pytest.raises(InvalidConfigurationError, match="increasing"):
        check_grid(np.array([0.2, 0.1]), np.array([1.0, 1.0]))
    with pytest.raises(InvalidConfigurationError, match="inside"):
        check_grid(np.array([0.5, 1.0]), np.array([1.0, 1.0]))


def test_zero_width_is_identity(nonuniform_grid):
    y = np.sin(10 * nonuniform_grid) ** 2
    np.testing.assert_array_equal(smear_log_edge(nonuniform_grid, y, 0.0), y)


def test_integral_preserved(nonuniform_grid):
    """Sum y dx is preserved on a non-uniform grid."""
    x = nonuniform_grid
    y = np.where(x < 0.75, 1 / x, 0.2 / x)
    smeared = smear_log_edge(x, y, 0.05)
    assert _integral(x, smeared) == pytest.approx(_integral(x, y), rel=1e-10)


def test_edge_is_smoothed(nonuniform_grid):
    """A step becomes a ramp across the edge."""
    x = nonuniform_grid
    y = np.where(x < 0.75, 1.0, 0.0)
    smeared = smear_log_edge(x, y, 0.05)
    just_below = np.argmin(np.abs(x - 0.745))
    just_above = np.argmin(np.abs(x - 0.755))
    assert smeared[just_below] < 1.0
    assert smeared[just_above] > 0.0
    assert np.all(smeared >= 0)


def test_negative_width_rejected(nonuniform_grid):
    with pytest.raises(InvalidConfigurationError):
        smear_log_edge(nonuniform_grid, np.ones_like(nonuniform_grid), -0.1)


def test_model_convolution_in_place(model, nonuniform_grid):
    """The model writes the smeared curve into the caller's array."""
    x = nonuniform_grid.copy()
    y = np.where(x < 0.75, 2.0, 0.5)
    original = y.copy()
    returned = model.apply_beam_crystal_convolution(x, y)
    assert returned is y
    np.testing.assert_array_equal(x, nonuniform_grid)
    assert not np.array_equal(y, original)
    assert _integral(x, y) == pytest.approx(_integral(x, original), rel=1e-10)


def test_model_convolution_partial(model, nonuniform_grid):
    """Only the first nbins entries are touched."""
    x = nonuniform_grid
    y = np.where(x < 0.75, 2.0, 0.5)
    original = y.copy()
    model.apply_beam_crystal_convolution(x, y, nbins=100)
    np.testing.assert_array_equal(y[100:], original[100:])


@pytest.fixture
def mosaic_models():
    """Zero-emittance diamond radiators without and with a 50 urad mosaic spread."""
    table = CrystalTable()
    table.variant("diamond", "flat_diamond", mosaic_spread=0.0)
    table.variant("diamond", "mosaic_diamond", mosaic_spread=5e-5)
    models = []
    for name in ("flat_diamond", "mosaic_diamond"):
        m = RadiatorModel(12.0, 9.0, crystal=name, crystal_table=table)
        m.beam_emittance = 0.0
        models.append(m)
    return models


def test_angular_spread_quadrature(model):
    """Divergence, mosaic spread and multiple scattering add in quadrature."""
    divergence = model.beam_emittance / model.collimator_spotrms
    expected = np.sqrt(divergence**2 + model.species.mosaic_spread**2 + model.sigma2ms())
    assert model.edge_angular_spread() == pytest.approx(expected, rel=1e-12)


def test_zero_emittance_still_smears(mosaic_models, nonuniform_grid):
    """Multiple scattering in the radiator smears the edge of a perfect beam."""
    flat, _ = mosaic_models
    assert flat.edge_angular_spread() == pytest.approx(np.sqrt(flat.sigma2ms()), rel=1e-12)
    y = np.where(nonuniform_grid < 0.75, 2.0, 0.5)
    original = y.copy()
    flat.apply_beam_crystal_convolution(nonuniform_grid, y)
    assert not np.array_equal(y, original)


def test_mosaic_widens_smearing(mosaic_models, nonuniform_grid):
    """A nonzero mosaic spread spreads the edge further."""
    flat, mosaic = mosaic_models
    assert mosaic.edge_angular_spread() > flat.edge_angular_spread()

    step = np.where(nonuniform_grid < 0.75, 1.0, 0.0)
    sharp, wide = step.copy(), step.copy()
    flat.apply_beam_crystal_convolution(nonuniform_grid, sharp)
    mosaic.apply_beam_crystal_convolution(nonuniform_grid, wide)
    just_above = np.argmin(np.abs(nonuniform_grid - 0.753))
    assert wide[just_above] > sharp[just_above]
    assert _integral(nonuniform_grid, wide) == pytest.approx(
        _integral(nonuniform_grid, step), rel=1e-10
    )


def test_model_zero_spot_rejected(model, nonuniform_grid):
    """Emittance without a beam spot has no angular spread defined."""
    model.collimator_spotrms = 0.0
    with pytest.raises(InvalidConfigurationError, match="spot"):
        model.apply_beam_crystal_convolution(nonuniform_grid, np.ones_like(nonuniform_grid))


def test_model_zero_tilt_rejected(model, nonuniform_grid):
    """With the identity orientation the primary edge cannot be smeared."""
    model.reset_target_orientation()
    with pytest.raises(InvalidConfigurationError, match="tilt"):
        model.apply_beam_crystal_convolution(nonuniform_grid, np.ones_like(nonuniform_grid))


def test_model_nbins_too_large(model):
    x = np.array([0.2, 0.4])
    with pytest.raises(InvalidConfigurationError, match="nbins"):
        model.apply_beam_crystal_convolution(x, np.ones(2), nbins=3)
