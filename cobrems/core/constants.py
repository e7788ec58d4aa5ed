"""
Physical constants for coherent bremsstrahlung calculations.

Natural units are used throughout the engine: energies, momenta and masses in
GeV (c = 1), lengths in m. ``HBARC`` converts between the two.
"""

import numpy as np

# ============================================================================
# Mathematical Constants
# ============================================================================

DPI = np.pi

# ============================================================================
# Fundamental Constants
# ============================================================================

# Electron mass
ME = 0.51099895000e-3  # GeV

# Fine structure constant
ALPHA = 7.2973525693e-3

# hbar * c
HBARC = 1.973269804e-16  # GeV m

# Classical electron radius
R_E = ALPHA * HBARC / ME  # m

# Avogadro constant
AVOGADRO = 6.02214076e23  # mol^-1

# Boltzmann constant
KB_GEV = 8.617333262e-14  # GeV/K

# Atomic mass unit
AMU_GEV = 0.93149410242  # GeV

# Elementary charge
E_CHARGE = 1.602176634e-19  # C

# ============================================================================
# Conversion Factors
# ============================================================================

ANGSTROM = 1e-10  # m
CM_TO_M = 1e-2
G_PER_CM3_TO_KG_PER_M3 = 1e3

# Multiple-scattering parameterizations quote momenta in MeV
GEV_TO_MEV = 1e3

# ============================================================================
# Numerical Constants
# ============================================================================

# Small number for numerical stability
EPSILON = np.finfo(np.float64).eps

# Relative slack with which a reciprocal vector sitting exactly on the
# kinematic edge is still counted
EDGE_TOLERANCE = 1e-9
