"""
Single source of the package version.

hatchling reads ``__version__`` from here at build time.
"""

__version__ = "0.1.0"
