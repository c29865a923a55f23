"""
Revenue Domain

Aggregates settled payments of completed appointments per day, ISO week,
month and service.
"""

from .router import router

__all__ = ["router"]
