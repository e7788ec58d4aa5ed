"""
Command-line interface for cobrems.

This module provides CLI tools for:
- Printing beamline and crystal summaries from config files
- Tabulating photon spectra
"""

__all__ = []
