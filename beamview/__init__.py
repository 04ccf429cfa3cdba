"""
beamview - serves the built GeoJSON map viewer locally and opens a browser on it.
"""

__version__ = "1.0.0"
