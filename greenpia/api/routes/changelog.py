"""
Changelog and audit log API routes

GET /api/changelog - Latest "what changed" entries
GET /api/audit-logs - Latest audit entries (admin)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import AuditLogInfo, ChangeLogInfo
from greenpia.database import AuditLog, ChangeLog, User, get_db

router = APIRouter()


@router.get("/changelog", response_model=List[ChangeLogInfo])
def list_changelog(
    limit: int = Query(default=50, ge=1, le=500),
    entity_type: Optional[str] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(ChangeLog)
    if entity_type:
        query = query.filter(ChangeLog.related_entity_type == entity_type)
    entries = query.order_by(ChangeLog.date.desc(), ChangeLog.id.desc()).limit(limit).all()
    return [ChangeLogInfo.model_validate(e) for e in entries]


@router.get("/audit-logs", response_model=List[AuditLogInfo])
def list_audit_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entries = session.query(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return [AuditLogInfo.model_validate(e) for e in entries]
