"""
AppInit - Idempotent installation and upgrade wizard
"""

__version__ = "0.1.0"

from .core import AppInitializer
from .errors import InitError

__all__ = ["AppInitializer", "InitError"]
