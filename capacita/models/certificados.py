# capacita/models/certificados.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid


class Certificados(Base):
    __tablename__ = "certificados"
    __table_args__ = (
        UniqueConstraint(
            "usuario_id",
            "treinamento_id",
            name="uq_certificados_usuario_treinamento",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    usuario_id: Mapped[str] = mapped_column(
        ForeignKey("perfis.id", ondelete="CASCADE"), nullable=False
    )
    treinamento_id: Mapped[str] = mapped_column(
        ForeignKey("treinamentos.id", ondelete="CASCADE"), nullable=False
    )
    certificate_hash: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    credential_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    emitido_em: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
