# capacita/models/progresso_treinamentos.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid, utcnow


class ProgressoTreinamentos(Base):
    __tablename__ = "progresso_treinamentos"
    __table_args__ = (
        UniqueConstraint(
            "usuario_id",
            "treinamento_id",
            name="uq_progresso_usuario_treinamento",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    usuario_id: Mapped[str] = mapped_column(
        ForeignKey("perfis.id", ondelete="CASCADE"), nullable=False
    )
    treinamento_id: Mapped[str] = mapped_column(
        ForeignKey("treinamentos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    percentual_concluido: Mapped[Optional[float]] = mapped_column(
        Numeric(5, 2, asdecimal=False), default=0, nullable=True
    )
    concluido: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_inicio: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    data_conclusao: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    tempo_assistido_minutos: Mapped[Optional[int]] = mapped_column(
        Integer, default=0, nullable=True
    )
    nota_avaliacao: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    atualizado_em: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=True
    )
