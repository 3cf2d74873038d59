"""Best-effort audit trail.

Routes hand an :class:`AuditEvent` to FastAPI's ``BackgroundTasks`` after the
primary commit. The notifier writes it through its own session and only ever
logs a failure; callers never see one.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from budgetup.db import SessionLocal
from budgetup.models.audit_log import AuditLog
from budgetup.models.enums import AuditAction

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class AuditEvent:
    org_id: uuid.UUID
    action: AuditAction
    table_name: str
    user_id: uuid.UUID | None = None
    record_id: str | uuid.UUID | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None

class AuditNotifier:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def record(self, event: AuditEvent) -> bool:
        try:
            with self._session_factory() as db:
                db.add(
                    AuditLog(
                        org_id=event.org_id,
                        user_id=event.user_id,
                        action=event.action.value,
                        table_name=event.table_name,
                        record_id=str(event.record_id) if event.record_id is not None else None,
                        old_values=jsonable_encoder(event.old_values) if event.old_values else None,
                        new_values=jsonable_encoder(event.new_values) if event.new_values else None,
                    )
                )
                db.commit()
        except Exception:
            # never propagates; the business write already committed
            logger.warning(
                "audit write failed org=%s action=%s table=%s",
                event.org_id,
                event.action.value,
                event.table_name,
                exc_info=True,
            )
            return False
        return True

    def dispatch(self, background: BackgroundTasks, event: AuditEvent) -> None:
        background.add_task(self.record, event)

_notifier = AuditNotifier()

def get_audit_notifier() -> AuditNotifier:
    return _notifier
