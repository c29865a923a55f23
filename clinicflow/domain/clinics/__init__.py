"""
Clinics Domain

Clinics (tenants), the services they offer and their doctors.
"""

from .router import router

__all__ = ["router"]
