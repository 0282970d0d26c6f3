# capacita/models/pagamentos.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid, utcnow


class Pagamentos(Base):
    __tablename__ = "pagamentos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    empresa_id: Mapped[str] = mapped_column(
        ForeignKey("empresas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    valor: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    data_pagamento: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    data_vencimento: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    metodo_pagamento: Mapped[str] = mapped_column(String(32), nullable=False)
    referencia: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    observacoes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
