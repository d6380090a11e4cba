"""Phasewright pipeline entry points and configuration."""

__version__ = "0.1.0"
