"""Revoked session tokens - survives process restarts."""

from datetime import datetime

from sqlalchemy import DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from campadmin.core.database import Base


class RevokedToken(Base):
    """A session token invalidated on logout.

    Rows are live for the token lifetime after created_at and are purged
    by a background task once that window has passed.
    """

    __tablename__ = "revoked_tokens"

    token: Mapped[str] = mapped_column(Text, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
