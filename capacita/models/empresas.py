# capacita/models/empresas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid, utcnow


class Empresas(Base):
    __tablename__ = "empresas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nome: Mapped[str] = mapped_column(String, nullable=False)
    nome_fantasia: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    razao_social: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    cnpj: Mapped[Optional[str]] = mapped_column(String(14), unique=True, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    telefone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # identificador da paleta; resolvido contra a tabela fixa em services.theme
    tema_cor: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    plano_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("planos.id", ondelete="SET NULL"), nullable=True
    )
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_demo: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bloqueada: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    motivo_bloqueio: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    data_bloqueio: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    atualizado_em: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True
    )
