"""
HTTP routes for Edge Visits.
"""

from .api import create_api_router

__all__ = ["create_api_router"]
