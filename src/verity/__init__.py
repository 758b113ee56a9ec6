"""Verity - tamper-evident video evidence anchoring for vehicle fleets."""

__version__ = "0.1.0"
