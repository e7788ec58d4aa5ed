"""
Beamline components.

This module provides:
- Beam, radiator and collimator configuration
- Collimator acceptance
- Multiple scattering and radiation lengths
- Beam-crystal smearing convolution
"""

from cobrems.beamline.config import BeamlineConfig, CollimatorOverride
from cobrems.beamline.acceptance import collimator_acceptance
from cobrems.beamline.convolution import smear_log_edge

__all__ = ["BeamlineConfig", "CollimatorOverride", "collimator_acceptance", "smear_log_edge"]
