"""
Core utilities.

This module provides:
- Physical constants
- Units and unit conversion
- Error taxonomy
- Configuration and logging
- Caching utilities
"""

from cobrems.core import constants
from cobrems.core import units
from cobrems.core import config
from cobrems.core import logging_config
from cobrems.core.cache import LRUCache, cached_lattice_table, get_cache_stats, clear_all_caches
from cobrems.core.exceptions import (
    CobremsError,
    InvalidConfigurationError,
    InvalidKinematicsError,
    ConvergenceError,
    CoherentEdgeError,
    LatticeSumConvergenceError,
    NumericalGuardError,
)

__all__ = [
    # Modules
    "constants",
    "units",
    "config",
    "logging_config",
    # Caching
    "LRUCache",
    "cached_lattice_table",
    "get_cache_stats",
    "clear_all_caches",
    # Errors
    "CobremsError",
    "InvalidConfigurationError",
    "InvalidKinematicsError",
    "ConvergenceError",
    "CoherentEdgeError",
    "LatticeSumConvergenceError",
    "NumericalGuardError",
]
