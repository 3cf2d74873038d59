import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from budgetup.auth.deps import get_current_user
from budgetup.db import get_db
from budgetup.models.audit_log import AuditLog
from budgetup.models.enums import AuditAction
from budgetup.models.user import User
from budgetup.rbac.deps import OrgContext, load_org_context, require_perm
from budgetup.schemas.audit import AuditLogOut, AuditLogPage, ManualAuditIn
from budgetup.services.audit import AuditEvent, AuditNotifier, get_audit_notifier

router = APIRouter(tags=["audit"])

@router.get("/organizations/{org_id}/audit-logs", response_model=AuditLogPage)
def list_audit_logs(
    org_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    action: AuditAction | None = None,
    table_name: str | None = None,
    user_id: uuid.UUID | None = None,
    ctx: OrgContext = Depends(require_perm("view_audit_logs")),
    db: Session = Depends(get_db),
) -> AuditLogPage:
    criteria = [AuditLog.org_id == org_id]
    if action is not None:
        criteria.append(AuditLog.action == action.value)
    if table_name:
        criteria.append(AuditLog.table_name == table_name)
    if user_id is not None:
        criteria.append(AuditLog.user_id == user_id)

    total = db.scalar(select(func.count()).select_from(AuditLog).where(*criteria)) or 0
    rows = db.scalars(
        select(AuditLog)
        .where(*criteria)
        .order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    items = [
        AuditLogOut(
            id=r.id,
            org_id=r.org_id,
            user_id=r.user_id,
            action=r.action,
            table_name=r.table_name,
            record_id=r.record_id,
            old_values=r.old_values,
            new_values=r.new_values,
            created_at=r.created_at,
        )
        for r in rows
    ]
    return AuditLogPage(items=items, page=page, limit=limit, total=total)

@router.post("/audit-logs")
def create_manual_audit_log(
    payload: ManualAuditIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> dict:
    # any member may record an entry
    load_org_context(db, payload.organization_id, user)

    ok = audit.record(
        AuditEvent(
            org_id=payload.organization_id,
            user_id=user.id,
            action=payload.action,
            table_name=payload.table_name,
            record_id=payload.record_id,
            new_values=payload.metadata,
        )
    )
    if not ok:
        raise HTTPException(status_code=500, detail="failed to create audit log")
    return {"success": True}
