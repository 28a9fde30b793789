# audit/models/__init__.py

from audit.models.audit_entry import AuditLogEntry

__all__ = ["AuditLogEntry"]
