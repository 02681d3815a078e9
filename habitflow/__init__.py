"""Habitflow - recurring habit occurrence engine"""

__version__ = "1.0.0"
