"""
API routers for the webapp.
"""

from . import health, segments

__all__ = ["health", "segments"]
