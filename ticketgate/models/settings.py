from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from ticketgate.models.base import Base, StringIDMixin, TimestampMixin


class SystemSettingsRecord(StringIDMixin, TimestampMixin, Base):
    """Single-row store for operator-editable system settings (id = "form-settings")."""

    __tablename__ = "system_settings"

    values: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=dict, nullable=False)
