# src/chronoseal/report/__init__.py

"""
Reporting module for ChronoSeal.
Persists verification audit trails as JSON manifests.
"""

from .audit_log import AuditLog

__all__ = [
    "AuditLog",
]
