"""
Example: Coherent bremsstrahlung spectrum around the edge.

This example builds a radiator model from a configuration file, tabulates
the photon spectrum near the coherent edge, smears it by the beam angular
spread and compares a warm and a cold diamond.
"""

import numpy as np
from pathlib import Path

from cobrems import RadiatorModel
from cobrems.core.logging_config import setup_logging

CONFIG = Path(__file__).parent / "radiator.yaml"


# Example 1: Spectrum table around the edge
def example_spectrum_table():
    """Tabulate rates and enhancement near the 9 GeV edge."""
    model = RadiatorModel.from_config(CONFIG)
    print(model.print_beamline_info())
    print()
    print(model.print_target_crystal_info())

    xvalues = np.linspace(0.6, 0.8, 41)
    table = model.spectrum_table(xvalues)
    print(table.to_string(index=False, float_format=lambda v: f"{v:.4e}"))

    output_file = Path(__file__).parent / "edge_spectrum.csv"
    table.to_csv(output_file, index=False)
    print(f"Saved to: {output_file}")


# Example 2: Beam-crystal convolution
def example_convolution():
    """Smear the coherent rate by the beam divergence."""
    model = RadiatorModel.from_config(CONFIG)

    xvalues = np.linspace(0.6, 0.8, 201)
    sharp = np.array([model.rate_dNcdx(x) for x in xvalues])
    smeared = sharp.copy()
    model.apply_beam_crystal_convolution(xvalues, smeared)

    peak = np.argmax(sharp)
    print(f"Sharp edge peak:   x={xvalues[peak]:.4f}, dN/dx={sharp[peak]:.4e}")
    peak = np.argmax(smeared)
    print(f"Smeared edge peak: x={xvalues[peak]:.4f}, dN/dx={smeared[peak]:.4e}")


# Example 3: Crystal temperature and polarization
def example_cold_crystal():
    """Compare a tabulated and a cold diamond, and the polarized flux."""
    model = RadiatorModel.from_config(CONFIG)
    x = 0.74

    warm = model.rate_dNcdx(x)
    model.set_target_crystal("cold_diamond")
    cold = model.rate_dNcdx(x)
    print(f"Coherent dN/dx at x={x}: warm {warm:.4e}, cold {cold:.4e}")

    model.polarized_flux = True
    polarized = model.rate_dNcdx(x)
    model.polarized_flux = False
    total = model.rate_dNtdx(x)
    print(f"Linear polarization of the total flux at x={x}: {polarized / total:.3f}")


if __name__ == "__main__":
    setup_logging(level="WARNING")

    print("=" * 60)
    print("Example 1: Spectrum table")
    print("=" * 60)
    example_spectrum_table()

    print("\n" + "=" * 60)
    print("Example 2: Beam-crystal convolution")
    print("=" * 60)
    example_convolution()

    print("\n" + "=" * 60)
    print("Example 3: Cold crystal and polarization")
    print("=" * 60)
    example_cold_crystal()
