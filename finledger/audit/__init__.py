"""Audit logging package."""

from finledger.audit.logger import AuditListener, AuditLogger, configure_logging

__all__ = ["AuditListener", "AuditLogger", "configure_logging"]
