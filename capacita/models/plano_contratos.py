# capacita/models/plano_contratos.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid, utcnow


class PlanoContratos(Base):
    __tablename__ = "plano_contratos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    empresa_id: Mapped[str] = mapped_column(
        ForeignKey("empresas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plano_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("planos.id", ondelete="SET NULL"), nullable=True
    )
    nome_plano: Mapped[str] = mapped_column(String(64), nullable=False)
    preco_contratado: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False
    )
    limite_usuarios: Mapped[int] = mapped_column(Integer, nullable=False)
    limite_treinamentos: Mapped[int] = mapped_column(Integer, nullable=False)
    data_inicio: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    data_fim: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # external_reference do gateway; garante um contrato por cobrança
    referencia_externa: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    atualizado_em: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True
    )
