"""
HTTP surface for segment processing.
"""

from webapp.api import create_webapp_api

__all__ = ["create_webapp_api"]
