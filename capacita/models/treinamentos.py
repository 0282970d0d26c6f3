# capacita/models/treinamentos.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capacita.models.base import Base, new_uuid, utcnow
from capacita.models.empresas import Empresas


class StatusTreinamento(str, Enum):
    Ativo = "ativo"
    Inativo = "inativo"
    Rascunho = "rascunho"


class Treinamentos(Base):
    __tablename__ = "treinamentos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    titulo: Mapped[str] = mapped_column(String(255), nullable=False)
    descricao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    categoria: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    duracao_minutos: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    nivel: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    conteudo_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), default=StatusTreinamento.Rascunho.value, nullable=False
    )
    publicado: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    obrigatorio: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_limite: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    empresa_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("empresas.id", ondelete="CASCADE"), nullable=True, index=True
    )
    instrutor_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("perfis.id", ondelete="SET NULL"), nullable=True
    )
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    atualizado_em: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True
    )

    empresa: Mapped[Optional[Empresas]] = relationship()
