"""
Scheduling Domain

Appointment booking and lifecycle:
- slot_generator.py    free start times within business hours
- conflict_detector.py doctor double-booking check
- service.py           create / cancel / complete / update / listings
- router.py            HTTP endpoints
"""

from .router import router

__all__ = ["router"]
