"""
Tests for the coherent lattice sum and its cutoff growth.
"""

import logging

import numpy as np
import pytest

from cobrems.core.exceptions import LatticeSumConvergenceError
from cobrems.crystal.lattice import reciprocal_lattice
from cobrems.generator.lattice_sum import (
    coherent_lattice_sum,
    converged_lattice_sum,
    orient_lattice,
    outer_shell_fraction,
)


@pytest.fixture
def lattice_for(base_model):
    """Oriented diamond lattices of the 9 GeV edge model, recording each cutoff asked for."""
    species = base_model.species
    matrix = base_model.orientation.matrix

    def build(hmax):
        build.calls.append(hmax)
        return orient_lattice(
            reciprocal_lattice(species, hmax),
            matrix,
            species.betaFF,
            base_model.debye_waller_constant,
        )

    build.calls = []
    return build


def test_outer_shell_fraction():
    shell = np.array([0, 1, 2])
    weight = np.array([1.0, -1.0, 1.0])
    assert outer_shell_fraction(shell, weight, 2) == pytest.approx(2 / 3)


def test_outer_shell_fraction_reference_floor():
    """A reference rate dilutes the tail of a small coherent sum."""
    shell = np.array([1, 2])
    weight = np.array([1e-6, 1e-6])
    assert outer_shell_fraction(shell, weight, 2) == pytest.approx(1.0)
    assert outer_shell_fraction(shell, weight, 2, reference=1.0) == pytest.approx(2e-6, rel=1e-5)


def test_outer_shell_fraction_empty():
    empty = np.array([], dtype=int)
    assert outer_shell_fraction(empty, np.array([]), 4) == 0.0


def test_record_fields(lattice_for):
    record = coherent_lattice_sum(0.7, 12.0, lattice_for(4), 1.0)
    assert record.hmax == 4
    assert record.converged
    assert len(record.shell) == len(record)
    assert record.shells.shape == (5,)
    assert record.shells.sum() == pytest.approx(np.abs(record.weight).sum())
    np.testing.assert_array_equal(record.shell, np.abs(record.hkl).max(axis=1))


def test_accepts_first_converged_cutoff(lattice_for):
    """A sum whose tail is already small stops at the first cutoff."""
    record, weights = converged_lattice_sum(
        0.7, 12.0, lattice_for, 1.0, [4, 6, 8], reference=1e30
    )
    assert lattice_for.calls == [4]
    assert record.hmax == 4
    np.testing.assert_array_equal(weights, record.weight)


def test_grows_until_ceiling(lattice_for, caplog):
    """Every cutoff is tried before the sum is declared unconverged."""
    with caplog.at_level(logging.WARNING, logger="cobrems.generator.lattice_sum"):
        with pytest.raises(LatticeSumConvergenceError, match="not converged") as excinfo:
            converged_lattice_sum(0.7, 12.0, lattice_for, 1.0, [2, 3, 4], tolerance=0.0)
    assert lattice_for.calls == [2, 3, 4]
    record = excinfo.value.record
    assert record.hmax == 4
    assert not record.converged
    assert "not converged" in caplog.text


def test_tail_measured_on_summed_weights(lattice_for):
    """Weights removed before summing do not count towards the tail."""

    def inner_shells_only(record):
        return np.where(record.shell < record.hmax - 1, record.weight, 0.0)

    record, weights = converged_lattice_sum(
        0.7, 12.0, lattice_for, 1.0, [4, 6], weigh=inner_shells_only, tolerance=0.0
    )
    assert record.hmax == 4
    assert np.sum(weights) < record.total


def test_no_cutoffs(lattice_for):
    with pytest.raises(ValueError, match="cutoffs"):
        converged_lattice_sum(0.7, 12.0, lattice_for, 1.0, [])
