"""
API v1 modules
"""

from . import devices, session

__all__ = ["devices", "session"]
