"""
nest-registry: package registry backend.
Stores authors and packages, coordinates publications and records uploads.
"""

__version__ = "0.1.0"
