from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid, utcnow


class Planos(Base):
    __tablename__ = "planos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nome: Mapped[str] = mapped_column(String(64), nullable=False)
    descricao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preco: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    limite_usuarios: Mapped[int] = mapped_column(Integer, nullable=False)
    limite_treinamentos: Mapped[int] = mapped_column(Integer, nullable=False)
    limite_armazenamento_gb: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
