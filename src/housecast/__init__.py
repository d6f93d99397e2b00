"""
Housecast: housing price prediction pipeline.

This package provides normalization, a small Keras regression network,
versioned model artifacts and a prediction service that estimates a
sale price from square footage and bedroom count.
"""

from importlib.metadata import version

__version__ = version("housecast")

__all__ = ["__version__"]
