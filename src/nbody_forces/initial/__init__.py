"""
Initial condition generators.
"""

from .random import random_bodies

__all__ = ["random_bodies"]
