"""
mobilewash - scheduling and billing core for a mobile car-wash service.
"""

__version__ = "0.1.0"
