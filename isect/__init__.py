"""isect — Intersection Types for a Nominal Class Language"""

__version__ = "0.1.0"
