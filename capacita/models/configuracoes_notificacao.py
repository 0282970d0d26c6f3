from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from capacita.models.base import Base, new_uuid

REMINDER_HOURS = (1, 2, 6, 12, 24, 48)

class ConfiguracoesNotificacao(Base):
    __tablename__ = "configuracoes_notificacao"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    empresa_id: Mapped[str] = mapped_column(
        ForeignKey("empresas.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    alerta_novo_curso: Mapped[bool] = mapped_column(Boolean, default=True)
    certificado_automatico: Mapped[bool] = mapped_column(Boolean, default=True)
    lembrete_antes_curso: Mapped[bool] = mapped_column(Boolean, default=True)
    horas_antes_lembrete: Mapped[int] = mapped_column(SmallInteger, default=24)
    notificacoes_email: Mapped[bool] = mapped_column(Boolean, default=True)
    sincronizar_calendario: Mapped[bool] = mapped_column(Boolean, default=True)

# --------- Pydantic Schemas ---------
from pydantic import BaseModel, ConfigDict, field_validator

class NotificationSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    alerta_novo_curso: bool = True
    certificado_automatico: bool = True
    lembrete_antes_curso: bool = True
    horas_antes_lembrete: int = 24
    notificacoes_email: bool = True
    sincronizar_calendario: bool = True

class NotificationSettingsIn(BaseModel):
    alerta_novo_curso: bool | None = None
    certificado_automatico: bool | None = None
    lembrete_antes_curso: bool | None = None
    horas_antes_lembrete: int | None = None
    notificacoes_email: bool | None = None
    sincronizar_calendario: bool | None = None

    @field_validator("horas_antes_lembrete")
    @classmethod
    def allowed_hours(cls, value: int | None) -> int | None:
        if value is not None and value not in REMINDER_HOURS:
            raise ValueError(
                "Antecedência do lembrete deve ser 1, 2, 6, 12, 24 ou 48 horas."
            )
        return value
