"""Audit logging package."""

from tripledger.audit.logger import AuditListener, AuditLogger

__all__ = ["AuditListener", "AuditLogger"]
