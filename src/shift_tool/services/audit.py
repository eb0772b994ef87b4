"""Audit logging service"""
import json
from typing import Optional
from sqlalchemy.orm import Session

from src.shift_tool.models.audit_log import AuditLog
from src.shift_tool.models.user import User


def log_action(
    db: Session,
    actor: User,
    action: str,
    target_type: str,
    target_id: Optional[int] = None,
    meta: Optional[dict] = None
) -> AuditLog:
    audit_log = AuditLog(
        organization_id=actor.organization_id,
        actor_user_id=actor.id,
        actor_role_snapshot=actor.role.value,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta_json=json.dumps(meta, ensure_ascii=False) if meta else None
    )
    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)
    return audit_log
