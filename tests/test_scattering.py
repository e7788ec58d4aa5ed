"""
Tests for radiation lengths, Debye-Waller constants and multiple scattering.
"""

import numpy as np
import pytest

from cobrems.beamline import scattering
from cobrems.core.exceptions import InvalidConfigurationError


def test_radiation_length_pdg_carbon():
    """PDG fit gives about 43 g/cm^2 for carbon."""
    x0 = scattering.radiation_length_pdg(6, 12.01, 1.0)
    assert x0 == pytest.approx(0.430, rel=0.01)


def test_radiation_length_schiff_close_to_pdg():
    """Schiff and PDG agree to a few percent for light elements."""
    pdg = scattering.radiation_length_pdg(6, 12.01, 3.534)
    schiff = scattering.radiation_length_schiff(6, 12.01, 3.534)
    assert schiff == pytest.approx(pdg, rel=0.05)


def test_radiation_length_scales_with_density():
    assert scattering.radiation_length_pdg(14, 28.086, 4.658) == pytest.approx(
        scattering.radiation_length_pdg(14, 28.086, 2.329) / 2
    )


def test_radiation_length_invalid():
    with pytest.raises(InvalidConfigurationError, match="density"):
        scattering.radiation_length_pdg(6, 12.01, 0.0)


def test_debye_integral_limits():
    """phi(0) = 1 and phi(y) ~ pi^2 / (6 y) for large y."""
    assert scattering.debye_integral(0.0) == 1.0
    assert scattering.debye_integral(1e-6) == pytest.approx(1.0, rel=1e-5)
    assert scattering.debye_integral(50.0) == pytest.approx(np.pi**2 / 300, rel=1e-6)


def test_debye_waller_grows_with_temperature():
    """Thermal vibrations grow with temperature."""
    cold = scattering.debye_waller_constant(2220.0, 10.0, 12.01)
    room = scattering.debye_waller_constant(2220.0, 293.0, 12.01)
    hot = scattering.debye_waller_constant(2220.0, 1500.0, 12.01)
    assert cold < room < hot


def test_debye_waller_diamond_and_silicon():
    """Room-temperature values of the built-in species."""
    assert scattering.debye_waller_constant(2220.0, 293.0, 12.01) == pytest.approx(3.905e8, rel=0.01)
    assert scattering.debye_waller_constant(645.0, 293.0, 28.086) == pytest.approx(1.058e9, rel=0.01)


def test_model_debye_waller_accessor(model):
    """The model's accessor uses the current species' mass."""
    assert model.get_target_debye_waller_constant(2220.0, 293.0) == pytest.approx(
        scattering.debye_waller_constant(2220.0, 293.0, 12.01)
    )


def test_model_target_temperature_switches_debye_waller(model):
    """Setting a temperature replaces the tabulated constant."""
    tabulated = model.debye_waller_constant
    model.target_temperature = 20.0
    assert model.debye_waller_constant < tabulated
    model.target_temperature = None
    assert model.debye_waller_constant == tabulated


def test_sigma2ms_default_is_geant(model):
    """The unsuffixed estimator delegates to the GEANT form."""
    assert model.sigma2ms() == model.sigma2ms_geant()
    assert model.sigma2ms(1e-4) == model.sigma2ms_geant(1e-4)


def test_sigma2ms_scales_with_energy():
    """Mean-square angle falls as 1/p^2."""
    low = scattering.sigma2ms_pdg(1e-3, 0.12, 6.0)
    high = scattering.sigma2ms_pdg(1e-3, 0.12, 12.0)
    assert low / high == pytest.approx(4.0)


@pytest.mark.parametrize("fraction", [0.01, 0.05])
def test_pdg_and_hanson_agree(model, fraction):
    """Highland-Lynch-Dahl and Moliere-Hanson agree within 20%."""
    thickness = fraction * model.species.radiation_length
    pdg = model.sigma2ms_pdg(thickness)
    hanson = model.sigma2ms_hanson(thickness)
    assert hanson == pytest.approx(pdg, rel=0.2)


@pytest.mark.parametrize("fraction", [0.01, 0.05])
def test_all_estimators_same_order(model, fraction):
    """Every parameterization gives the same order of magnitude."""
    thickness = fraction * model.species.radiation_length
    values = [
        model.sigma2ms_pdg(thickness),
        model.sigma2ms_geant(thickness),
        model.sigma2ms_kaune(thickness),
        model.sigma2ms_hanson(thickness),
    ]
    assert all(v > 0 for v in values)
    assert max(values) / min(values) < 2.0


def test_sigma2ms_rejects_bad_thickness(model):
    """Non-positive thickness raises a configuration error."""
    with pytest.raises(InvalidConfigurationError):
        model.sigma2ms(0.0)
    with pytest.raises(InvalidConfigurationError):
        model.sigma2ms_pdg(-1e-6)
    with pytest.raises(InvalidConfigurationError):
        scattering.sigma2ms_hanson(0.0, 6, 12.01, 3.534, 12.0)


def test_model_radiation_lengths(model):
    """Accessors return the PDG and Schiff values for diamond."""
    assert model.get_target_radiation_length_PDG() == pytest.approx(0.1217, rel=0.01)
    assert model.get_target_radiation_length_Schiff() > model.get_target_radiation_length_PDG()
    assert model.species.radiation_length == model.get_target_radiation_length_PDG()
