import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from budgetup.models.base import Base

# JSONB on postgres, plain JSON elsewhere (sqlite in tests)
_JSON = sa.JSON().with_variant(JSONB(), "postgresql")

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    org_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, sa.ForeignKey("users.id"), nullable=True)

    action: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    table_name: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    record_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)

    old_values: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(_JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
        index=True,
    )
