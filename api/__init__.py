"""
HTTP API for the marketplace approval workflow and notification inbox.
"""

from api.main import app

__all__ = ["app"]
