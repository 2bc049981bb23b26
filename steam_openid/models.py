from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class StateRecord(Base):
    __tablename__ = "steam_openid_states"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)  # f"steam:{state}"
    value: Mapped[str] = mapped_column(String(255))
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)  # naive UTC


class NonceRecord(Base):
    __tablename__ = "steam_openid_nonces"

    nonce: Mapped[str] = mapped_column(String(255), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)  # naive UTC
