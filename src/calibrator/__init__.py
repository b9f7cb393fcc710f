"""Calibrator - learn recurring command failures and promote them into skills."""

__version__ = "1.1.0"

__all__ = ["__version__"]
