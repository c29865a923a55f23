"""ClinicFlow - multi-tenant clinic appointment booking API"""

__version__ = "1.0.0"
