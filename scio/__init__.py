"""Scio: timed head-to-head reasoning matches."""

__version__ = "0.3.0"
