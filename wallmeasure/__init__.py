"""Planar wall measurement from a photographed four-square fiducial pattern."""

__version__ = "1.0.0"
