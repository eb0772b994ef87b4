"""Database models"""
from src.shift_tool.models.base import Base
from src.shift_tool.models.organization import Organization
from src.shift_tool.models.user import User
from src.shift_tool.models.shift import Shift
from src.shift_tool.models.audit_log import AuditLog

__all__ = ["Base", "Organization", "User", "Shift", "AuditLog"]
